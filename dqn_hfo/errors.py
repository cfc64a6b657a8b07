"""
异常类型

DQN 智能体对外抛出的全部错误类型。
"""


class DQNError(Exception):
    """所有 DQN 错误的基类"""


class NotInitializedError(DQNError, RuntimeError):
    """在 initialize() 之前调用了其他操作"""


class InsufficientDataError(DQNError, ValueError):
    """经验回放中的数据不足以采样"""


class ConfigurationError(DQNError, ValueError):
    """构造参数非法"""


class ExternalCapabilityError(DQNError, RuntimeError):
    """
    网络 / 求解器层的错误

    例如克隆时网络结构不一致、快照文件缺少字段。
    底层 torch 或文件系统错误不会被包装，直接向上传播。
    """

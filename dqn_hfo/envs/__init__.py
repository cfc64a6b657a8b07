"""
任务环境模块

提供统一的向量状态任务环境接口，用于 DQN 训练和评估。
"""

from typing import Optional

from .base_env import BaseStateEnv
from .wrappers import StateStack, preprocess_state
from .tasks import TASK_REGISTRY
from ..replay_memory import INPUT_COUNT


def make_env(task_name: str, num_stack: int = INPUT_COUNT,
             render_mode: Optional[str] = None) -> StateStack:
    """
    工厂函数：创建指定任务的环境实例

    Args:
        task_name: 任务名称，如 'CartPole'
        num_stack: 状态窗口长度，默认 INPUT_COUNT
        render_mode: 渲染模式，'human' 或 None

    Returns:
        返回状态窗口的环境实例

    Raises:
        ValueError: 不支持的任务名称

    Example:
        >>> env = make_env('CartPole')
        >>> window = env.reset(seed=0)
        >>> window, reward, terminated, truncated, info = env.step(0)
    """
    if task_name not in TASK_REGISTRY:
        available = ', '.join(TASK_REGISTRY.keys())
        raise ValueError(f"不支持的任务: {task_name}。可用任务: {available}")

    env_class = TASK_REGISTRY[task_name]
    env = env_class(render_mode=render_mode)

    return StateStack(env, num_stack=num_stack)


__all__ = ['make_env', 'BaseStateEnv', 'StateStack', 'preprocess_state', 'TASK_REGISTRY']

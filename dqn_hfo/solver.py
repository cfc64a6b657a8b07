"""
求解器 (Solver)

持有主网络和优化器，负责：
- 单步优化（前向 + 反向 + 参数更新），迭代计数 +1
- 快照 / 恢复（网络参数、优化器状态、迭代次数）

自动快照不在 step 内部执行，由调用方在目标网络同步之后调用 maybe_snapshot()，
保存失败时主网络和目标网络仍保持一致。
"""

import os
from dataclasses import dataclass
from typing import Optional

import torch
import torch.nn as nn
import torch.optim as optim

from .errors import ConfigurationError, ExternalCapabilityError
from .network import QNetwork


SOLVER_TYPES = ('adadelta', 'rmsprop', 'adam', 'sgd')


@dataclass(frozen=True)
class SolverConfig:
    """求解器配置"""

    solver_type: str = 'adadelta'          # 优化器类型
    learning_rate: float = 0.2             # 学习率
    momentum: float = 0.95                 # Adadelta rho / RMSProp alpha / Adam beta1 / SGD momentum
    grad_clip: Optional[float] = None      # 梯度裁剪阈值，None 表示不裁剪
    snapshot_prefix: str = 'checkpoints/dqn'
    snapshot_interval: int = 0             # 每隔多少次迭代自动快照，0 表示只在调用时快照

    def __post_init__(self):
        if self.solver_type not in SOLVER_TYPES:
            raise ConfigurationError(
                f"不支持的求解器: {self.solver_type}。可用: {', '.join(SOLVER_TYPES)}")
        if self.learning_rate <= 0:
            raise ConfigurationError(f"learning_rate 必须为正数: {self.learning_rate}")
        if self.snapshot_interval < 0:
            raise ConfigurationError(f"snapshot_interval 不能为负: {self.snapshot_interval}")


def make_optimizer(net: nn.Module, config: SolverConfig) -> optim.Optimizer:
    """根据配置创建优化器"""
    params = net.parameters()
    if config.solver_type == 'adadelta':
        return optim.Adadelta(params, lr=config.learning_rate, rho=config.momentum)
    elif config.solver_type == 'rmsprop':
        # 与 Nature DQN 相同：不使用 momentum，eps=0.01
        return optim.RMSprop(params, lr=config.learning_rate, alpha=config.momentum, eps=0.01)
    elif config.solver_type == 'adam':
        return optim.Adam(params, lr=config.learning_rate, betas=(config.momentum, 0.999))
    else:
        return optim.SGD(params, lr=config.learning_rate, momentum=config.momentum)


class Solver:
    """
    主网络的求解器

    损失为 Euclidean loss：sum((Q * filter - target)^2) / (2 * batch)，
    filter 只保留每个样本实际执行动作的 Q 值。
    """

    def __init__(self, net: QNetwork, config: SolverConfig):
        self.net = net
        self.config = config
        self.optimizer = make_optimizer(net, config)
        self.iter = 0

    @property
    def iteration(self) -> int:
        return self.iter

    def step(self, states: torch.Tensor, targets: torch.Tensor,
             filters: torch.Tensor) -> float:
        """
        执行一次优化迭代

        Args:
            states: (batch, input_count, state_size)
            targets: (batch, n_actions)，只有执行动作对应的位置有效
            filters: (batch, n_actions)，每行恰好一个 1

        Returns:
            损失值
        """
        self.net.train()
        q_values = self.net(states)
        diff = q_values * filters - targets
        loss = 0.5 * torch.sum(diff * diff) / states.size(0)

        self.optimizer.zero_grad()
        loss.backward()
        if self.config.grad_clip is not None:
            nn.utils.clip_grad_norm_(self.net.parameters(), self.config.grad_clip)
        self.optimizer.step()

        self.iter += 1
        return loss.item()

    def snapshot_due(self) -> bool:
        """当前迭代次数是否到了自动快照的间隔"""
        interval = self.config.snapshot_interval
        return bool(interval) and self.iter % interval == 0

    def maybe_snapshot(self) -> Optional[str]:
        """到了自动快照间隔时保存快照，返回路径；否则返回 None"""
        if self.snapshot_due():
            return self.snapshot()
        return None

    def snapshot_path(self) -> str:
        return f'{self.config.snapshot_prefix}_iter_{self.iter}.pt'

    def snapshot(self) -> str:
        """
        保存网络参数、优化器状态和迭代次数

        Returns:
            快照文件路径
        """
        path = self.snapshot_path()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        torch.save({
            'q_network': self.net.state_dict(),
            'optimizer': self.optimizer.state_dict(),
            'iteration': self.iter,
        }, path)
        return path

    def restore(self, path: str):
        """
        从快照恢复网络参数、优化器状态和迭代次数

        Raises:
            FileNotFoundError: 快照文件不存在
            ExternalCapabilityError: 快照缺少必要字段
        """
        if not os.path.isfile(path):
            raise FileNotFoundError(f"快照文件不存在: {path}")
        checkpoint = torch.load(path, map_location=next(self.net.parameters()).device,
                                weights_only=True)
        missing = [key for key in ('q_network', 'optimizer', 'iteration') if key not in checkpoint]
        if missing:
            raise ExternalCapabilityError(f"快照 {path} 缺少字段: {', '.join(missing)}")
        self.net.load_state_dict(checkpoint['q_network'])
        self.optimizer.load_state_dict(checkpoint['optimizer'])
        self.iter = int(checkpoint['iteration'])

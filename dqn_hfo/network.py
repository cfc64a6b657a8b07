"""
Q-Network 定义

输入为状态窗口堆叠后的张量，输出每个合法动作的 Q 值：
- 输入: (batch, input_count, state_size)
- 展平: input_count * state_size
- 若干全连接层, ReLU
- 输出: n_actions 个 Q 值
"""

from typing import Sequence, Tuple

import torch
import torch.nn as nn
import torch.nn.functional as F

from .errors import ExternalCapabilityError


HIDDEN_SIZES = (1024, 512, 256, 128)


class QNetwork(nn.Module):
    """
    全连接 Q-Network

    主网络和目标网络使用同一结构，目标网络的参数只通过
    copy_parameters_from 从主网络整体拷贝。
    """

    def __init__(self, input_count: int, state_size: int, n_actions: int,
                 hidden_sizes: Sequence[int] = HIDDEN_SIZES):
        super(QNetwork, self).__init__()
        self.input_count = input_count
        self.state_size = state_size
        self.n_actions = n_actions
        self.hidden_sizes = tuple(hidden_sizes)

        sizes = [input_count * state_size, *self.hidden_sizes]
        self.hidden = nn.ModuleList(
            nn.Linear(sizes[i], sizes[i + 1]) for i in range(len(sizes) - 1)
        )
        self.q_values = nn.Linear(sizes[-1], n_actions)

    @property
    def architecture(self) -> Tuple[int, int, int, Tuple[int, ...]]:
        return self.input_count, self.state_size, self.n_actions, self.hidden_sizes

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        前向传播

        Args:
            x: 输入状态，形状 (batch, input_count, state_size)

        Returns:
            各动作的 Q 值，形状 (batch, n_actions)
        """
        x = x.reshape(x.size(0), -1)
        for layer in self.hidden:
            x = F.relu(layer(x))
        return self.q_values(x)

    @torch.no_grad()
    def copy_parameters_from(self, other: 'QNetwork'):
        """
        从另一个同结构网络拷贝全部参数（数据拷贝，不重建结构）

        Raises:
            ExternalCapabilityError: 两个网络结构不一致
        """
        if self.architecture != other.architecture:
            raise ExternalCapabilityError(
                f"网络结构不一致: {self.architecture} != {other.architecture}")
        self.load_state_dict(other.state_dict())


def create_q_network(input_count: int, state_size: int, n_actions: int,
                     hidden_sizes: Sequence[int] = HIDDEN_SIZES,
                     device: str = 'cpu') -> QNetwork:
    """
    创建 Q-Network 并移动到指定设备
    """
    network = QNetwork(input_count, state_size, n_actions, hidden_sizes)
    return network.to(device)

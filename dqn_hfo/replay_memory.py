"""
数据结构和经验回放

包含 StateVector / StateWindow 构造函数、Transition 和 ReplayMemory。

状态窗口 (StateWindow) 是最近 INPUT_COUNT 个状态向量组成的元组，
相邻的 Transition 共享同一批向量对象，写入回放时不做任何拷贝。
"""

import random
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

import numpy as np

from .errors import ConfigurationError, InsufficientDataError


STATE_SIZE = 58      # 每个状态向量的特征数
INPUT_COUNT = 2      # 状态窗口长度

StateVector = np.ndarray
StateWindow = Tuple[StateVector, ...]


def make_state_vector(values, state_size: int = STATE_SIZE) -> StateVector:
    """
    构造只读的 float32 状态向量

    Args:
        values: 任意可转为一维数组的特征序列
        state_size: 期望的特征数

    Returns:
        形状 (state_size,) 的只读数组
    """
    vector = np.array(values, dtype=np.float32).reshape(-1)
    if vector.shape[0] != state_size:
        raise ValueError(f"状态向量长度应为 {state_size}，实际为 {vector.shape[0]}")
    vector.setflags(write=False)
    return vector


def make_state_window(vectors: Iterable[StateVector], input_count: int = INPUT_COUNT,
                      state_size: int = STATE_SIZE) -> StateWindow:
    """
    由已有状态向量构造状态窗口（按引用保存，不拷贝）

    Args:
        vectors: 从旧到新排列的状态向量
        input_count: 窗口长度
        state_size: 每个向量的特征数

    Returns:
        长度为 input_count 的元组
    """
    window = tuple(vectors)
    if len(window) != input_count:
        raise ValueError(f"状态窗口长度应为 {input_count}，实际为 {len(window)}")
    for vector in window:
        if vector.shape != (state_size,):
            raise ValueError(f"状态向量形状应为 ({state_size},)，实际为 {vector.shape}")
    return window


@dataclass(frozen=True, eq=False)
class Transition:
    """
    单步经验数据

    Attributes:
        states: 当前状态窗口
        action: 动作 id（属于 legal_actions）
        reward: 即时奖励
        next_states: 下一状态窗口；episode 结束时为 None
    """
    states: StateWindow
    action: int
    reward: float
    next_states: Optional[StateWindow] = None

    @property
    def terminal(self) -> bool:
        """是否为终止转移（没有下一状态，不做 bootstrap）"""
        return self.next_states is None


class ReplayMemory:
    """
    经验回放缓冲区

    严格 FIFO：满了以后按插入顺序淘汰最旧的经验。
    """

    def __init__(self, capacity: int, rng: Optional[random.Random] = None):
        if capacity <= 0:
            raise ConfigurationError(f"replay_memory_capacity 必须为正整数: {capacity}")
        self.capacity = capacity
        self.buffer = deque(maxlen=capacity)
        self.rng = rng if rng is not None else random.Random(0)

    def add(self, transition: Transition):
        self.buffer.append(transition)

    def sample(self, batch_size: int, replace: bool = True) -> List[Transition]:
        """
        均匀随机采样

        Args:
            batch_size: 采样数量
            replace: 是否有放回采样（默认有放回）

        Returns:
            采样得到的经验列表，顺序随机
        """
        if not self.buffer:
            raise InsufficientDataError("经验回放为空，无法采样")
        if replace:
            return self.rng.choices(self.buffer, k=batch_size)
        if batch_size > len(self.buffer):
            raise InsufficientDataError(
                f"无放回采样需要 {batch_size} 条经验，当前只有 {len(self.buffer)} 条")
        return self.rng.sample(list(self.buffer), batch_size)

    def clear(self):
        self.buffer.clear()

    def __iter__(self) -> Iterator[Transition]:
        return iter(self.buffer)

    def __len__(self) -> int:
        return len(self.buffer)

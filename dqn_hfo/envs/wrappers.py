"""
状态处理工具和包装器

提供状态向量预处理和状态窗口堆叠功能。
"""

from typing import Optional, Tuple
from collections import deque

import numpy as np

from ..replay_memory import INPUT_COUNT, StateWindow, make_state_vector


def preprocess_state(observation: np.ndarray, state_size: Optional[int] = None) -> np.ndarray:
    """
    将环境观测转换为状态向量

    处理步骤：
    1. 展平为一维
    2. 转换为 float32
    3. 设为只读，供多个状态窗口共享

    Args:
        observation: 原始观测
        state_size: 期望的特征数，None 表示不检查

    Returns:
        状态向量 (state_size,)
    """
    observation = np.asarray(observation)
    if state_size is None:
        state_size = observation.size
    return make_state_vector(observation, state_size)


class StateStack:
    """
    状态窗口包装器

    将最近 num_stack 个状态向量组成状态窗口（从旧到新）。
    相邻窗口共享同一批向量对象，不做拷贝。
    """

    def __init__(self, env, num_stack: int = INPUT_COUNT):
        """
        Args:
            env: 底层任务环境（BaseStateEnv 实例）
            num_stack: 窗口长度，默认 INPUT_COUNT
        """
        self._env = env
        self._num_stack = num_stack
        self._states = deque(maxlen=num_stack)

        # gymnasium 兼容属性
        self.metadata = getattr(env, 'metadata', {'render_modes': []})
        self.render_mode = getattr(env, 'render_mode', None)
        self.action_space = getattr(env, 'action_space', None)

    @property
    def num_stack(self) -> int:
        return self._num_stack

    def reset(self, seed: Optional[int] = None) -> StateWindow:
        """
        重置环境并用初始状态填满窗口

        Returns:
            状态窗口，长度 num_stack
        """
        state = self._env.reset(seed=seed)
        self._states.clear()
        for _ in range(self._num_stack):
            self._states.append(state)
        return tuple(self._states)

    def step(self, action: int) -> Tuple[StateWindow, float, bool, bool, dict]:
        """
        执行动作并滑动窗口

        Returns:
            window: 新的状态窗口
            reward: 即时奖励
            terminated: 是否终止
            truncated: 是否截断
            info: 额外信息
        """
        state, reward, terminated, truncated, info = self._env.step(action)
        self._states.append(state)
        return tuple(self._states), reward, terminated, truncated, info

    def get_action_space(self) -> int:
        """获取动作空间大小"""
        return self._env.get_action_space()

    def get_state_size(self) -> int:
        """获取状态向量的特征数"""
        return self._env.get_state_size()

    def sample_action(self) -> int:
        """随机采样动作"""
        return self._env.sample_action()

    def render(self) -> None:
        self._env.render()

    def close(self) -> None:
        self._env.close()

    def get_task_name(self) -> str:
        return self._env.get_task_name()

    @property
    def unwrapped(self):
        """获取底层未包装的环境"""
        return self._env.unwrapped

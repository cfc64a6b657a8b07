"""
任务环境抽象基类

定义所有向量状态任务环境的统一接口。
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .wrappers import preprocess_state


class BaseStateEnv(ABC):
    """
    向量状态任务环境的抽象基类

    所有具体任务环境必须继承此类并实现抽象方法。
    底层 gymnasium 环境需要离散动作空间和 Box 观测空间。
    """

    def __init__(self, env_id: str, render_mode: Optional[str] = None, **kwargs: Any):
        """
        初始化任务环境

        Args:
            env_id: gymnasium 环境 id，如 'CartPole-v1'
            render_mode: 渲染模式，'human' 显示窗口，None 不渲染
            **kwargs: 传给 gym.make 的其他参数
        """
        self.env_id = env_id
        self.render_mode = render_mode

        # 创建底层 Gymnasium 环境
        self._env = gym.make(env_id, render_mode=render_mode, **kwargs)

        if not isinstance(self._env.action_space, spaces.Discrete):
            raise ValueError(f"{env_id} 的动作空间不是离散的")
        if not isinstance(self._env.observation_space, spaces.Box):
            raise ValueError(f"{env_id} 的观测空间不是 Box")

        # gymnasium 兼容属性
        self.metadata = self._env.metadata
        self.action_space = self._env.action_space
        self.observation_space = self._env.observation_space

        # 缓存环境信息
        self._action_space_size = int(self._env.action_space.n)
        self._state_size = int(np.prod(self._env.observation_space.shape))

    def reset(self, seed: Optional[int] = None) -> np.ndarray:
        """
        重置环境到初始状态

        Args:
            seed: 随机种子，用于可重复性

        Returns:
            初始状态向量 (state_size,)，只读 float32
        """
        obs, info = self._env.reset(seed=seed)
        return preprocess_state(obs, self._state_size)

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, dict]:
        """
        执行动作并返回环境反馈

        Args:
            action: 动作索引，范围 [0, action_space_size)

        Returns:
            state: 状态向量 (state_size,)
            reward: 即时奖励
            terminated: 是否到达终止状态（不做 bootstrap）
            truncated: 是否因步数上限截断
            info: 额外信息字典
        """
        obs, reward, terminated, truncated, info = self._env.step(action)
        return preprocess_state(obs, self._state_size), float(reward), terminated, truncated, info

    def get_action_space(self) -> int:
        """获取动作空间大小"""
        return self._action_space_size

    def get_state_size(self) -> int:
        """获取状态向量的特征数"""
        return self._state_size

    def sample_action(self) -> int:
        """随机采样一个动作"""
        return int(self._env.action_space.sample())

    def render(self) -> None:
        """
        渲染当前帧（仅在 render_mode='human' 时有效）
        """
        if self.render_mode == 'human':
            self._env.render()

    def close(self) -> None:
        """
        释放环境资源
        """
        self._env.close()

    @property
    def unwrapped(self):
        """获取底层未包装的环境"""
        return self._env.unwrapped

    @abstractmethod
    def get_task_name(self) -> str:
        """
        获取任务名称（子类必须实现）
        """
        pass

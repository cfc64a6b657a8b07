"""
CartPole 任务环境

经典控制任务：小车上立杆，4 维状态，2 个离散动作。
"""

from typing import Optional

from ..base_env import BaseStateEnv


class CartPoleEnv(BaseStateEnv):
    """
    CartPole 任务环境

    状态（4 维）：小车位置、小车速度、杆角度、杆角速度

    动作空间（2 个动作）：
    - 0: 向左推
    - 1: 向右推
    """

    ENV_ID = 'CartPole-v1'

    def __init__(self, render_mode: Optional[str] = None):
        super().__init__(env_id=self.ENV_ID, render_mode=render_mode)

    def get_task_name(self) -> str:
        return 'CartPole'

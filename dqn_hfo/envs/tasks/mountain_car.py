"""
MountainCar 任务环境
"""

from typing import Optional

from ..base_env import BaseStateEnv


class MountainCarEnv(BaseStateEnv):
    """
    MountainCar 任务环境

    状态（2 维）：位置、速度
    动作空间（3 个动作）：向左加速 / 不加速 / 向右加速
    """

    ENV_ID = 'MountainCar-v0'

    def __init__(self, render_mode: Optional[str] = None):
        super().__init__(env_id=self.ENV_ID, render_mode=render_mode)

    def get_task_name(self) -> str:
        return 'MountainCar'

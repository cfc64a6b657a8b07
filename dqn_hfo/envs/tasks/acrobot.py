"""
Acrobot 任务环境

双连杆摆动任务，6 维状态，3 个离散动作。
"""

from typing import Optional

from ..base_env import BaseStateEnv


class AcrobotEnv(BaseStateEnv):
    """
    Acrobot 任务环境

    状态（6 维）：两个关节角的 cos / sin 以及两个角速度

    动作空间（3 个动作）：
    - 0: 施加 -1 力矩
    - 1: 不施加力矩
    - 2: 施加 +1 力矩
    """

    ENV_ID = 'Acrobot-v1'

    def __init__(self, render_mode: Optional[str] = None):
        super().__init__(env_id=self.ENV_ID, render_mode=render_mode)

    def get_task_name(self) -> str:
        return 'Acrobot'

"""
任务环境注册模块

管理所有可用的任务环境类。
"""

from .acrobot import AcrobotEnv
from .cart_pole import CartPoleEnv
from .mountain_car import MountainCarEnv


# 任务注册表：任务名称 -> 环境类
TASK_REGISTRY = {
    'CartPole': CartPoleEnv,
    'Acrobot': AcrobotEnv,
    'MountainCar': MountainCarEnv,
}


__all__ = ['TASK_REGISTRY', 'CartPoleEnv', 'AcrobotEnv', 'MountainCarEnv']

"""
DQN 模块 (Half Field Offense)

包含 DQN 智能体所需的神经网络、求解器、经验回放等组件。
核心：有界经验回放 + epsilon-greedy + 定期同步的 Target Network
"""

from .agent import DQNAgent, MINIBATCH_SIZE, get_device
from .errors import (
    ConfigurationError,
    DQNError,
    ExternalCapabilityError,
    InsufficientDataError,
    NotInitializedError,
)
from .network import QNetwork, create_q_network
from .replay_memory import (
    INPUT_COUNT,
    STATE_SIZE,
    ReplayMemory,
    Transition,
    make_state_vector,
    make_state_window,
)
from .solver import Solver, SolverConfig

__all__ = [
    'DQNAgent',
    'MINIBATCH_SIZE',
    'get_device',
    'QNetwork',
    'create_q_network',
    'Solver',
    'SolverConfig',
    'ReplayMemory',
    'Transition',
    'make_state_vector',
    'make_state_window',
    'STATE_SIZE',
    'INPUT_COUNT',
    'DQNError',
    'NotInitializedError',
    'InsufficientDataError',
    'ConfigurationError',
    'ExternalCapabilityError',
]

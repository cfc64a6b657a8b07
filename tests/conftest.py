"""测试公共 fixture：小规模智能体和随机状态窗口"""

import numpy as np
import pytest
import torch

from dqn_hfo import DQNAgent, SolverConfig, make_state_vector, make_state_window

STATE_SIZE = 4
INPUT_COUNT = 2


@pytest.fixture
def make_window():
    """返回一个生成随机状态窗口的函数"""
    rng = np.random.default_rng(123)

    def _make():
        vectors = [make_state_vector(rng.normal(size=STATE_SIZE), STATE_SIZE)
                   for _ in range(INPUT_COUNT)]
        return make_state_window(vectors, INPUT_COUNT, STATE_SIZE)

    return _make


@pytest.fixture
def make_agent(tmp_path):
    """返回一个构造小规模智能体的函数，参数可覆盖"""

    def _make(initialize: bool = True, **overrides) -> DQNAgent:
        kwargs = dict(
            legal_actions=[0, 1, 2],
            solver_config=SolverConfig(
                solver_type='sgd',
                learning_rate=0.1,
                momentum=0.0,
                snapshot_prefix=str(tmp_path / 'snapshots' / 'dqn'),
            ),
            replay_memory_capacity=10,
            gamma=0.9,
            clone_frequency=2,
            state_size=STATE_SIZE,
            input_count=INPUT_COUNT,
            minibatch_size=4,
            hidden_sizes=(16,),
            seed=0,
        )
        kwargs.update(overrides)
        agent = DQNAgent(**kwargs)
        if initialize:
            agent.initialize()
        return agent

    return _make


def same_parameters(net_a: torch.nn.Module, net_b: torch.nn.Module) -> bool:
    state_a, state_b = net_a.state_dict(), net_b.state_dict()
    return state_a.keys() == state_b.keys() and all(
        torch.equal(state_a[key], state_b[key]) for key in state_a)


@pytest.fixture
def params_equal():
    return same_parameters

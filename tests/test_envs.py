"""Tests for state preprocessing, the state window wrapper and task environments."""

import numpy as np
import pytest

from dqn_hfo.envs import StateStack, make_env, preprocess_state


class FakeEnv:
    """按顺序返回 0, 1, 2, ... 组成的状态向量"""

    def __init__(self, state_size=3, episode_length=5):
        self.state_size = state_size
        self.episode_length = episode_length
        self.t = 0

    def _state(self):
        return preprocess_state(np.full(self.state_size, self.t), self.state_size)

    def reset(self, seed=None):
        self.t = 0
        return self._state()

    def step(self, action):
        self.t += 1
        terminated = self.t >= self.episode_length
        return self._state(), 1.0, terminated, False, {}

    def get_action_space(self):
        return 2

    def get_state_size(self):
        return self.state_size

    def get_task_name(self):
        return 'Fake'

    def close(self):
        pass


class TestPreprocessState:
    def test_flattens_to_read_only_float32(self):
        vector = preprocess_state(np.arange(6, dtype=np.float64).reshape(2, 3))
        assert vector.shape == (6,)
        assert vector.dtype == np.float32
        assert not vector.flags.writeable

    def test_checks_expected_size(self):
        with pytest.raises(ValueError):
            preprocess_state(np.zeros(4), state_size=5)


class TestStateStack:
    def test_reset_fills_window_with_initial_state(self):
        env = StateStack(FakeEnv(), num_stack=3)
        window = env.reset()
        assert len(window) == 3
        assert window[0] is window[1] is window[2]

    def test_step_slides_window_oldest_first(self):
        env = StateStack(FakeEnv(), num_stack=2)
        env.reset()
        window, reward, terminated, truncated, _ = env.step(0)
        assert [v[0] for v in window] == [0.0, 1.0]
        window, _, _, _, _ = env.step(0)
        assert [v[0] for v in window] == [1.0, 2.0]
        assert reward == 1.0
        assert not terminated and not truncated

    def test_consecutive_windows_share_vectors(self):
        env = StateStack(FakeEnv(), num_stack=2)
        first = env.reset()
        second, _, _, _, _ = env.step(0)
        third, _, _, _, _ = env.step(1)
        assert second[0] is first[1]
        assert third[0] is second[1]

    def test_delegates_to_inner_env(self):
        env = StateStack(FakeEnv(state_size=7), num_stack=2)
        assert env.num_stack == 2
        assert env.get_state_size() == 7
        assert env.get_action_space() == 2
        assert env.get_task_name() == 'Fake'


class TestMakeEnv:
    def test_unknown_task(self):
        with pytest.raises(ValueError):
            make_env('Pong')

    def test_cart_pole_windows(self):
        env = make_env('CartPole', num_stack=2)
        try:
            window = env.reset(seed=0)
            assert len(window) == 2
            assert window[0].shape == (env.get_state_size(),)
            assert env.get_action_space() == 2

            window, reward, terminated, truncated, info = env.step(env.sample_action())
            assert len(window) == 2
            assert isinstance(reward, float)
            assert window[1].dtype == np.float32
        finally:
            env.close()

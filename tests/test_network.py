"""Tests for QNetwork and Solver."""

import pytest
import torch

from dqn_hfo import ConfigurationError, ExternalCapabilityError, QNetwork, Solver, SolverConfig


def make_net(seed: int = 0, **overrides) -> QNetwork:
    torch.manual_seed(seed)
    kwargs = dict(input_count=2, state_size=4, n_actions=3, hidden_sizes=(8,))
    kwargs.update(overrides)
    return QNetwork(**kwargs)


class TestQNetwork:
    def test_output_shape(self):
        net = make_net()
        q_values = net(torch.randn(5, 2, 4))
        assert q_values.shape == (5, 3)

    def test_copy_parameters_gives_identical_outputs(self):
        source, target = make_net(0), make_net(1)
        x = torch.randn(6, 2, 4)
        assert not torch.equal(source(x), target(x))
        target.copy_parameters_from(source)
        assert torch.equal(source(x), target(x))

    def test_copy_is_deep(self):
        source, target = make_net(0), make_net(1)
        target.copy_parameters_from(source)
        before = target.q_values.weight.clone()
        with torch.no_grad():
            source.q_values.weight.add_(1.0)
        assert torch.equal(target.q_values.weight, before)

    def test_architecture_mismatch(self):
        source = make_net(hidden_sizes=(8,))
        target = make_net(hidden_sizes=(16,))
        with pytest.raises(ExternalCapabilityError):
            target.copy_parameters_from(source)


class TestSolver:
    def test_unknown_solver_type(self):
        with pytest.raises(ConfigurationError):
            SolverConfig(solver_type='lbfgs')

    @pytest.mark.parametrize("solver_type", ['adadelta', 'rmsprop', 'adam', 'sgd'])
    def test_step_increments_iteration(self, solver_type):
        net = make_net()
        solver = Solver(net, SolverConfig(solver_type=solver_type, learning_rate=0.01))
        states = torch.randn(4, 2, 4)
        targets = torch.zeros(4, 3)
        filters = torch.zeros(4, 3)
        filters[:, 1] = 1.0
        targets[:, 1] = 1.0
        loss = solver.step(states, targets, filters)
        assert isinstance(loss, float)
        assert solver.iteration == 1

    def test_euclidean_loss_uses_filtered_slots_only(self):
        net = make_net()
        solver = Solver(net, SolverConfig(solver_type='sgd', learning_rate=0.01, momentum=0.0))
        states = torch.randn(4, 2, 4)
        targets = torch.zeros(4, 3)
        filters = torch.zeros(4, 3)
        filters[torch.arange(4), torch.tensor([0, 1, 2, 0])] = 1.0
        targets[torch.arange(4), torch.tensor([0, 1, 2, 0])] = 2.0

        with torch.no_grad():
            q_values = net(states)
        expected = 0.5 * torch.sum((q_values * filters - targets) ** 2).item() / 4

        loss = solver.step(states, targets, filters)
        assert loss == pytest.approx(expected, rel=1e-5)

    def test_snapshot_and_restore(self, tmp_path):
        config = SolverConfig(solver_type='sgd', learning_rate=0.1, momentum=0.0,
                              snapshot_prefix=str(tmp_path / 'run' / 'net'))
        net = make_net(0)
        solver = Solver(net, config)
        states = torch.randn(4, 2, 4)
        targets = torch.ones(4, 3)
        filters = torch.ones(4, 3)
        solver.step(states, targets, filters)
        solver.step(states, targets, filters)
        path = solver.snapshot()
        assert path == str(tmp_path / 'run' / 'net_iter_2.pt')

        other = Solver(make_net(1), config)
        other.restore(path)
        assert other.iteration == 2
        x = torch.randn(3, 2, 4)
        assert torch.equal(other.net(x), net(x))

    def test_automatic_snapshot_interval(self, tmp_path):
        config = SolverConfig(solver_type='sgd', learning_rate=0.1,
                              snapshot_prefix=str(tmp_path / 'auto'), snapshot_interval=2)
        solver = Solver(make_net(), config)
        args = (torch.randn(2, 2, 4), torch.ones(2, 3), torch.ones(2, 3))
        solver.step(*args)
        assert not solver.snapshot_due()
        assert solver.maybe_snapshot() is None
        assert not (tmp_path / 'auto_iter_1.pt').exists()
        solver.step(*args)
        # step 本身不写快照
        assert not (tmp_path / 'auto_iter_2.pt').exists()
        assert solver.maybe_snapshot() == str(tmp_path / 'auto_iter_2.pt')
        assert (tmp_path / 'auto_iter_2.pt').exists()

    def test_snapshot_disabled_by_default(self, tmp_path):
        config = SolverConfig(snapshot_prefix=str(tmp_path / 'never'))
        solver = Solver(make_net(), config)
        solver.step(torch.randn(2, 2, 4), torch.ones(2, 3), torch.ones(2, 3))
        assert not solver.snapshot_due()
        assert solver.maybe_snapshot() is None

    def test_restore_missing_file(self, tmp_path):
        solver = Solver(make_net(), SolverConfig())
        with pytest.raises(FileNotFoundError):
            solver.restore(str(tmp_path / 'missing.pt'))

    def test_restore_malformed_snapshot(self, tmp_path):
        net = make_net()
        path = tmp_path / 'partial.pt'
        torch.save({'q_network': net.state_dict()}, path)
        solver = Solver(make_net(), SolverConfig())
        with pytest.raises(ExternalCapabilityError):
            solver.restore(str(path))

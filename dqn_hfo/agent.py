"""
DQN 智能体

在 Nature DQN (2015) 的基础上封装：
- Target Network: 独立的目标网络计算 Bellman 目标
- 定期同步: 每隔 clone_frequency 次求解器迭代将主网络参数拷贝到目标网络
- epsilon-greedy 动作选择（单个 / 批量）
- 构造 state / target / filter 三组 minibatch 输入，交给求解器做一步优化
"""

import os
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import torch

from .errors import ConfigurationError, InsufficientDataError, NotInitializedError
from .network import HIDDEN_SIZES, QNetwork, create_q_network
from .replay_memory import INPUT_COUNT, STATE_SIZE, ReplayMemory, StateWindow, Transition
from .solver import Solver, SolverConfig


MINIBATCH_SIZE = 32

ActionValue = Tuple[int, float]


def get_device() -> str:
    """自动检测最佳可用设备"""
    if torch.cuda.is_available():
        return 'cuda'
    elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return 'mps'  # Apple Silicon
    else:
        return 'cpu'


@dataclass
class DQNAgent:
    """
    DQN 智能体

    使用前必须调用一次 initialize()，否则其他操作抛出 NotInitializedError。
    """

    # 动作空间：网络第 i 个输出对应 legal_actions[i]
    legal_actions: Sequence[int]

    # 超参数
    solver_config: SolverConfig = field(default_factory=SolverConfig)
    replay_memory_capacity: int = 500_000   # 经验回放容量
    gamma: float = 0.99                     # 折扣因子
    clone_frequency: int = 10_000           # 目标网络同步间隔（求解器迭代次数）

    # 输入 / 批大小
    state_size: int = STATE_SIZE
    input_count: int = INPUT_COUNT
    minibatch_size: int = MINIBATCH_SIZE
    hidden_sizes: Tuple[int, ...] = HIDDEN_SIZES
    sample_with_replacement: bool = True    # 回放采样是否有放回

    # 随机种子和设备
    seed: int = 0
    device: str = 'cpu'

    # 内部状态 (initialize 中创建)
    q_network: Optional[QNetwork] = field(init=False, default=None, repr=False)
    target_network: Optional[QNetwork] = field(init=False, default=None, repr=False)
    solver: Optional[Solver] = field(init=False, default=None, repr=False)
    replay_memory: Optional[ReplayMemory] = field(init=False, default=None, repr=False)
    random_engine: Optional[random.Random] = field(init=False, default=None, repr=False)
    last_clone_iteration: Optional[int] = field(init=False, default=None)

    def __post_init__(self):
        """校验配置"""
        self.legal_actions = tuple(int(a) for a in self.legal_actions)
        if not self.legal_actions:
            raise ConfigurationError("legal_actions 不能为空")
        if len(set(self.legal_actions)) != len(self.legal_actions):
            raise ConfigurationError(f"legal_actions 存在重复: {self.legal_actions}")
        if self.replay_memory_capacity <= 0:
            raise ConfigurationError(
                f"replay_memory_capacity 必须为正整数: {self.replay_memory_capacity}")
        if not 0.0 <= self.gamma <= 1.0:
            raise ConfigurationError(f"gamma 必须在 [0, 1] 内: {self.gamma}")
        if self.clone_frequency <= 0:
            raise ConfigurationError(f"clone_frequency 必须为正整数: {self.clone_frequency}")
        for name in ('state_size', 'input_count', 'minibatch_size'):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} 必须为正整数: {getattr(self, name)}")
        self.hidden_sizes = tuple(self.hidden_sizes)

        self._action_index: Dict[int, int] = {a: i for i, a in enumerate(self.legal_actions)}

    def initialize(self):
        """初始化随机数、主网络、求解器、目标网络和经验回放"""
        if self.solver is not None:
            raise RuntimeError("DQNAgent 只能初始化一次")

        self.random_engine = random.Random(self.seed)
        torch.manual_seed(self.seed)

        n_actions = len(self.legal_actions)

        # 主 Q-Network 和求解器
        self.q_network = create_q_network(
            self.input_count, self.state_size, n_actions, self.hidden_sizes, self.device)
        self.solver = Solver(self.q_network, self.solver_config)

        # Target Network (结构相同，参数独立)
        self.target_network = create_q_network(
            self.input_count, self.state_size, n_actions, self.hidden_sizes, self.device)
        self.target_network.eval()  # 目标网络不需要梯度
        self.target_network.requires_grad_(False)

        # minibatch 输入缓冲区，每次 update 原地覆盖
        self._states_data = np.zeros(
            (self.minibatch_size, self.input_count, self.state_size), dtype=np.float32)
        self._target_data = np.zeros((self.minibatch_size, n_actions), dtype=np.float32)
        self._filter_data = np.zeros((self.minibatch_size, n_actions), dtype=np.float32)

        self.replay_memory = ReplayMemory(self.replay_memory_capacity, rng=self.random_engine)

        self.clone_primary_net()

    @property
    def initialized(self) -> bool:
        return self.solver is not None

    def _check_initialized(self):
        if self.solver is None:
            raise NotInitializedError("DQNAgent 尚未初始化，请先调用 initialize()")

    # ------------------------------------------------------------------
    # 目标网络
    # ------------------------------------------------------------------

    def clone_primary_net(self):
        """将主网络参数完整拷贝到目标网络"""
        self._check_initialized()
        self.target_network.copy_parameters_from(self.q_network)
        self.last_clone_iteration = self.solver.iteration

    # ------------------------------------------------------------------
    # 动作选择
    # ------------------------------------------------------------------

    def _stack_windows(self, windows: Sequence[StateWindow]) -> torch.Tensor:
        data = np.stack([np.stack(window) for window in windows]).astype(np.float32, copy=False)
        return torch.from_numpy(data).to(self.device)

    def select_action_greedily(self, net: QNetwork,
                               states_batch: Sequence[StateWindow]) -> List[ActionValue]:
        """
        一次前向传播，对每个状态窗口选出 Q 值最大的动作

        并列最大值时取第一个下标。

        Returns:
            [(动作 id, Q 值), ...]
        """
        if len(states_batch) == 0:
            return []
        with torch.no_grad():
            q_values = net(self._stack_windows(states_batch)).cpu().numpy()
        best = q_values.argmax(axis=1)
        return [(self.legal_actions[i], float(q_values[b, i])) for b, i in enumerate(best)]

    def select_action(self, states: StateWindow, epsilon: float) -> int:
        """
        使用 epsilon-greedy 策略选择动作

        Args:
            states: 当前状态窗口
            epsilon: 随机探索概率，[0, 1]

        Returns:
            选择的动作 id
        """
        self._check_initialized()
        if not 0.0 <= epsilon <= 1.0:
            raise ValueError(f"epsilon 必须在 [0, 1] 内: {epsilon}")

        if self.random_engine.random() < epsilon:
            # 随机探索
            return self.random_engine.choice(self.legal_actions)
        # 利用：选择 Q 值最大的动作
        return self.select_action_greedily(self.q_network, [states])[0][0]

    def select_actions(self, states_batch: Sequence[StateWindow], epsilon: float) -> List[int]:
        """
        批量选择动作：一次前向传播，每个样本独立做 epsilon-greedy

        Args:
            states_batch: 状态窗口列表
            epsilon: 随机探索概率，[0, 1]

        Returns:
            动作 id 列表
        """
        self._check_initialized()
        if not 0.0 <= epsilon <= 1.0:
            raise ValueError(f"epsilon 必须在 [0, 1] 内: {epsilon}")

        greedy = self.select_action_greedily(self.q_network, states_batch)

        actions = []
        for action, _ in greedy:
            if self.random_engine.random() < epsilon:
                actions.append(self.random_engine.choice(self.legal_actions))
            else:
                actions.append(action)
        return actions

    # ------------------------------------------------------------------
    # 经验回放
    # ------------------------------------------------------------------

    def add_transition(self, transition: Transition):
        """存储经验到回放缓冲区（满时淘汰最旧的一条）"""
        self._check_initialized()
        if transition.action not in self._action_index:
            raise ValueError(f"非法动作: {transition.action}，合法动作: {self.legal_actions}")
        self.replay_memory.add(transition)

    def clear_replay_memory(self):
        self._check_initialized()
        self.replay_memory.clear()

    def memory_size(self) -> int:
        self._check_initialized()
        return len(self.replay_memory)

    def current_iteration(self) -> int:
        self._check_initialized()
        return self.solver.iteration

    # ------------------------------------------------------------------
    # 训练
    # ------------------------------------------------------------------

    def build_minibatch(
        self, transitions: Sequence[Transition]
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        构造 state / target / filter 三组输入

        - state: 每个样本的状态窗口
        - target: 执行动作位置写入 r（终止）或 r + γ * max_a' Q_target(s', a')
        - filter: 执行动作位置为 1，其余为 0

        返回的数组是内部缓冲区的视图，下一次调用会被覆盖。
        """
        self._check_initialized()
        n = len(transitions)
        if n > self.minibatch_size:
            raise ValueError(f"minibatch 最多 {self.minibatch_size} 条，实际 {n} 条")
        for transition in transitions:
            if transition.action not in self._action_index:
                raise ValueError(
                    f"非法动作: {transition.action}，合法动作: {self.legal_actions}")

        self._states_data.fill(0.0)
        self._target_data.fill(0.0)
        self._filter_data.fill(0.0)
        states = self._states_data[:n]
        targets = self._target_data[:n]
        filters = self._filter_data[:n]

        for i, transition in enumerate(transitions):
            for j, vector in enumerate(transition.states):
                states[i, j] = vector

        # 只对非终止样本用目标网络计算下一状态的最大 Q 值
        next_indices = [i for i, t in enumerate(transitions) if not t.terminal]
        max_next_q = {}
        if next_indices:
            next_actions = self.select_action_greedily(
                self.target_network, [transitions[i].next_states for i in next_indices])
            max_next_q = {i: q for i, (_, q) in zip(next_indices, next_actions)}

        for i, transition in enumerate(transitions):
            if transition.terminal:
                target = transition.reward
            else:
                target = transition.reward + self.gamma * max_next_q[i]
            slot = self._action_index[transition.action]
            targets[i, slot] = target
            filters[i, slot] = 1.0

        return states, targets, filters

    def update(self) -> float:
        """
        使用一个 minibatch 更新主网络

        Returns:
            训练损失值
        """
        self._check_initialized()
        if len(self.replay_memory) < self.minibatch_size:
            raise InsufficientDataError(
                f"经验回放只有 {len(self.replay_memory)} 条，"
                f"不足 minibatch_size={self.minibatch_size}")

        transitions = self.replay_memory.sample(
            self.minibatch_size, replace=self.sample_with_replacement)
        states, targets, filters = self.build_minibatch(transitions)

        loss = self.solver.step(
            torch.from_numpy(states).to(self.device),
            torch.from_numpy(targets).to(self.device),
            torch.from_numpy(filters).to(self.device),
        )

        # 定期同步目标网络，必须在自动快照之前完成
        if self.solver.iteration % self.clone_frequency == 0:
            self.clone_primary_net()

        self.solver.maybe_snapshot()

        return loss

    # ------------------------------------------------------------------
    # 模型读写
    # ------------------------------------------------------------------

    def load_trained_model(self, path: str):
        """
        加载训练好的权重到主网络

        不改变经验回放、迭代次数和目标网络；需要一致的目标网络时请再调用 clone_primary_net()。
        可以是 save_trained_model 保存的参数，也可以是求解器快照。
        """
        self._check_initialized()
        if not os.path.isfile(path):
            raise FileNotFoundError(f"模型文件不存在: {path}")
        state_dict = torch.load(path, map_location=self.device, weights_only=True)
        if 'q_network' in state_dict:
            state_dict = state_dict['q_network']
        self.q_network.load_state_dict(state_dict)

    def save_trained_model(self, path: str):
        """保存主网络权重"""
        self._check_initialized()
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        torch.save(self.q_network.state_dict(), path)

    def restore_solver(self, path: str):
        """从求解器快照恢复训练（主网络、优化器状态、迭代次数），并重新同步目标网络"""
        self._check_initialized()
        self.solver.restore(path)
        self.clone_primary_net()

    def snapshot(self) -> str:
        """保存求解器快照，返回文件路径"""
        self._check_initialized()
        return self.solver.snapshot()

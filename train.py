"""
DQN 训练脚本

流程:
1. 创建任务环境（状态窗口）
2. epsilon 线性衰减的 epsilon-greedy 采样
3. 预热后每隔 update_interval 步用一个 minibatch 更新主网络
4. 每隔 clone_frequency 次迭代同步目标网络（由智能体内部完成）
5. 定期评估、快照，结束时绘制训练曲线
"""

import os
import time
import argparse

import numpy as np
import matplotlib.pyplot as plt
from tqdm import tqdm

from dqn_hfo import DQNAgent, SolverConfig, Transition, get_device
from dqn_hfo.envs import make_env


def linear_epsilon(step: int, eps_start: float, eps_end: float, decay_steps: int) -> float:
    """epsilon 线性衰减"""
    if step >= decay_steps:
        return eps_end
    progress = step / decay_steps
    return eps_start - progress * (eps_start - eps_end)


def evaluate(agent: DQNAgent, task_name: str, n_episodes: int = 5, epsilon: float = 0.05):
    """评估智能体性能"""
    env = make_env(task_name, num_stack=agent.input_count)

    total_rewards = []
    for episode in range(n_episodes):
        window = env.reset(seed=10_000 + episode)
        episode_reward = 0.0
        done = False

        while not done:
            action = agent.select_action(window, epsilon)
            window, reward, terminated, truncated, _ = env.step(action)
            episode_reward += reward
            done = terminated or truncated

        total_rewards.append(episode_reward)

    env.close()
    return np.mean(total_rewards), np.std(total_rewards)


def build_agent(args, state_size: int, n_actions: int) -> DQNAgent:
    solver_config = SolverConfig(
        solver_type=args.solver,
        learning_rate=args.lr,
        momentum=args.momentum,
        grad_clip=args.grad_clip,
        snapshot_prefix=os.path.join(args.save_dir, args.task.lower()),
        snapshot_interval=args.snapshot_interval,
    )
    agent = DQNAgent(
        legal_actions=list(range(n_actions)),
        solver_config=solver_config,
        replay_memory_capacity=args.memory_capacity,
        gamma=args.gamma,
        clone_frequency=args.clone_frequency,
        state_size=state_size,
        input_count=args.input_count,
        minibatch_size=args.batch_size,
        hidden_sizes=tuple(args.hidden_sizes),
        seed=args.seed,
        device=args.device or get_device(),
    )
    agent.initialize()
    return agent


def train(args):
    """主训练循环"""

    env = make_env(args.task, num_stack=args.input_count)
    state_size = env.get_state_size()
    n_actions = env.get_action_space()
    print(f"任务: {args.task} | 状态维度: {state_size} | 动作空间: {n_actions}")

    agent = build_agent(args, state_size, n_actions)
    print(f"设备: {agent.device}")
    print(f"Q-Network 参数量: {sum(p.numel() for p in agent.q_network.parameters()):,}")

    if args.model:
        agent.load_trained_model(args.model)
        agent.clone_primary_net()
        print(f"已加载模型: {args.model}")

    if args.resume:
        agent.restore_solver(args.resume)
        print(f"已恢复求解器: {args.resume} (迭代 {agent.current_iteration()})")

    if args.evaluate_only:
        eval_mean, eval_std = evaluate(agent, args.task, args.eval_episodes, args.eval_epsilon)
        print(f"[Eval] Reward: {eval_mean:.1f} ± {eval_std:.1f}")
        env.close()
        return

    # ========== 训练记录 ==========
    episode_rewards = []
    losses = []
    eval_rewards = []
    best_eval_reward = -float('inf')

    os.makedirs(args.save_dir, exist_ok=True)

    window = env.reset(seed=args.seed)
    episode_reward = 0.0
    start_time = time.time()

    print(f"\n开始训练 DQN...")
    print("-" * 60)

    pbar = tqdm(range(1, args.total_steps + 1), desc="Training")
    for step in pbar:
        epsilon = linear_epsilon(step, args.eps_start, args.eps_end, args.eps_decay_steps)
        action = agent.select_action(window, epsilon)

        next_window, reward, terminated, truncated, _ = env.step(action)
        episode_reward += reward

        # 终止状态不保存下一状态窗口；截断时仍可 bootstrap
        agent.add_transition(Transition(
            states=window,
            action=action,
            reward=reward,
            next_states=None if terminated else next_window,
        ))

        if terminated or truncated:
            episode_rewards.append(episode_reward)
            episode_reward = 0.0
            window = env.reset()
        else:
            window = next_window

        if (step > args.warmup_steps and step % args.update_interval == 0
                and agent.memory_size() >= args.batch_size):
            losses.append(agent.update())

        # 定期输出
        if step % args.log_interval == 0:
            elapsed = time.time() - start_time
            avg_reward = np.mean(episode_rewards[-100:]) if episode_rewards else 0.0
            avg_loss = np.mean(losses[-args.log_interval:]) if losses else 0.0
            tqdm.write(
                f"Steps: {step:,} | Episodes: {len(episode_rewards)} | "
                f"Avg Reward: {avg_reward:.1f} | Loss: {avg_loss:.4f} | "
                f"Epsilon: {epsilon:.3f} | Memory: {agent.memory_size():,} | "
                f"Iter: {agent.current_iteration():,} | SPS: {step / elapsed:.0f}"
            )

        # 评估
        if step % args.eval_interval == 0:
            eval_mean, eval_std = evaluate(agent, args.task, args.eval_episodes, args.eval_epsilon)
            eval_rewards.append((step, eval_mean, eval_std))
            tqdm.write(f"  [Eval] Reward: {eval_mean:.1f} ± {eval_std:.1f}")

            if eval_mean > best_eval_reward:
                best_eval_reward = eval_mean
                agent.save_trained_model(os.path.join(args.save_dir, f'{args.task.lower()}_best.pt'))
                tqdm.write(f"  *** New best: {eval_mean:.1f} ***")

    pbar.close()
    env.close()

    path = agent.snapshot()
    print(f"\n快照已保存: {path}")

    # ========== 绘制训练曲线 ==========
    print("绘制训练曲线...")

    fig, axes = plt.subplots(1, 3, figsize=(18, 5))

    ax = axes[0]
    ax.plot(episode_rewards, alpha=0.3, label='Episode Reward')
    if len(episode_rewards) >= 100:
        smoothed = np.convolve(episode_rewards, np.ones(100) / 100, mode='valid')
        ax.plot(range(99, len(episode_rewards)), smoothed, label='Moving Avg (100)')
    ax.set_xlabel('Episode')
    ax.set_ylabel('Reward')
    ax.set_title('Episode Rewards')
    ax.legend()
    ax.grid(True, alpha=0.3)

    ax = axes[1]
    if eval_rewards:
        steps, means, stds = zip(*eval_rewards)
        ax.errorbar(steps, means, yerr=stds, capsize=3, marker='o')
    ax.set_xlabel('Steps')
    ax.set_ylabel('Reward')
    ax.set_title(f'Evaluation Rewards (Best: {best_eval_reward:.1f})')
    ax.grid(True, alpha=0.3)

    ax = axes[2]
    ax.plot(losses, alpha=0.5)
    ax.set_xlabel('Update')
    ax.set_ylabel('Loss')
    ax.set_title('Training Loss')
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(os.path.join(args.save_dir, f'{args.task.lower()}_training_curves.png'), dpi=150)

    print(f"\n训练完成!")
    print(f"总步数: {args.total_steps:,}")
    print(f"总迭代次数: {agent.current_iteration():,}")
    print(f"最佳评估奖励: {best_eval_reward:.1f}")
    print(f"总耗时: {(time.time() - start_time) / 60:.1f} 分钟")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='DQN Training')

    # 训练参数
    parser.add_argument('--task', type=str, default='CartPole', help='任务名称')
    parser.add_argument('--total_steps', type=int, default=200_000, help='总训练步数')
    parser.add_argument('--warmup_steps', type=int, default=1_000, help='预热步数（不训练）')
    parser.add_argument('--update_interval', type=int, default=1, help='每隔多少步更新一次')
    parser.add_argument('--seed', type=int, default=0, help='随机种子')
    parser.add_argument('--device', type=str, default=None, help='计算设备，默认自动检测')

    # DQN 超参数
    parser.add_argument('--gamma', type=float, default=0.99, help='折扣因子')
    parser.add_argument('--memory_capacity', type=int, default=100_000, help='经验回放容量')
    parser.add_argument('--batch_size', type=int, default=32, help='minibatch 大小')
    parser.add_argument('--clone_frequency', type=int, default=1_000, help='目标网络同步间隔（迭代次数）')
    parser.add_argument('--input_count', type=int, default=2, help='状态窗口长度')
    parser.add_argument('--hidden_sizes', type=int, nargs='+', default=[256, 128], help='隐藏层宽度')

    # 求解器参数
    parser.add_argument('--solver', type=str, default='adadelta', help='adadelta / rmsprop / adam / sgd')
    parser.add_argument('--lr', type=float, default=0.2, help='学习率')
    parser.add_argument('--momentum', type=float, default=0.95, help='动量 / 平滑常数')
    parser.add_argument('--grad_clip', type=float, default=None, help='梯度裁剪阈值')

    # 探索参数
    parser.add_argument('--eps_start', type=float, default=1.0, help='初始探索率')
    parser.add_argument('--eps_end', type=float, default=0.1, help='最终探索率')
    parser.add_argument('--eps_decay_steps', type=int, default=50_000, help='epsilon 衰减步数')

    # 日志 / 评估 / 保存
    parser.add_argument('--log_interval', type=int, default=5_000, help='日志输出间隔 (步)')
    parser.add_argument('--eval_interval', type=int, default=20_000, help='评估间隔 (步)')
    parser.add_argument('--eval_episodes', type=int, default=5, help='每次评估的 episode 数')
    parser.add_argument('--eval_epsilon', type=float, default=0.05, help='评估时的 epsilon')
    parser.add_argument('--snapshot_interval', type=int, default=50_000, help='自动快照间隔 (迭代)，0 关闭')
    parser.add_argument('--save_dir', type=str, default='checkpoints', help='保存目录')

    # 恢复 / 评估
    parser.add_argument('--resume', type=str, default=None, help='从求解器快照恢复训练')
    parser.add_argument('--model', type=str, default=None, help='加载训练好的模型')
    parser.add_argument('--evaluate_only', action='store_true', help='只评估，不训练')

    args = parser.parse_args()

    # 打印配置
    print("=" * 60)
    print("DQN 训练配置")
    print("=" * 60)
    for key, value in vars(args).items():
        print(f"  {key}: {value}")
    print("=" * 60)

    train(args)

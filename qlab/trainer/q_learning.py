"""Q-learning training module.

Implements an off-policy Temporal Difference (TD) control algorithm
(Q-learning) over the discrete state and action spaces of a
`LearningEnvironment`, producing one tabular Q-table per goal.

Key Concepts:
  * Q-learning update: Q(s,a) ← Q(s,a) + α [ r + γ max_a' Q(s',a') - Q(s,a) ]
    where the max only ranges over the actions applicable in s'. The
    bootstrap term is omitted when s' is goal-compatible (terminal).
  * Exploration: ε-greedy over the applicable actions. With probability ε a
    uniformly random applicable action is taken, otherwise the greedy one
    (lowest action index wins ties, see `greedy_action`). ε optionally decays
    after each episode down to ``epsilon_min``.
  * Episodes: each episode starts with one random applicable action
    (`LearningEnvironment.randomize`) and ends when a goal-compatible state
    is reached. Exceeding ``max_steps`` raises `EpisodeStepLimitExceeded`.
  * Publication: the table is trained privately and put into the
    `QTableStore` only after the last episode. Any error leaves the store,
    including a previous table for the same goal, untouched.
"""

import dataclasses
import random
import threading
from typing import Any, Iterable

import numpy as np
from qlab.config import MODEL_PATH, TENSORBOARD_PATH, TrainingConfig
from qlab.environment import LearningEnvironment
from qlab.environment.goal import Goal, as_goal
from qlab.exceptions import EpisodeStepLimitExceeded, InvalidParameter, TrainingCancelled
from qlab.model.q_table import ModelQTable, greedy_action
from qlab.model.store import QTableStore
from qlab.trainer import Trainer
from qlab.trainer.reward import RewardFunction, reward_function_for
from qlab.utils.logger import logger


class TrainerQLearning(Trainer):
    """Q-learning trainer publishing goal-specific Q-tables into a store.

    Attributes:
        store (QTableStore): Destination of trained tables, shared with readers.
        reward_function (RewardFunction | None): Reward shaping override; when
            ``None`` the shaping is chosen from ``TrainingConfig.reward_mode``.
        epsilon (float): Current ε of the running training.
        rng (random.Random): Exploration random generator of the running training.
        model (ModelQTable | None): Last table trained by this trainer.
    """

    store: QTableStore
    reward_function: RewardFunction | None
    epsilon: float
    rng: random.Random
    model: ModelQTable | None

    def __init__(
        self,
        environment: LearningEnvironment,
        store: QTableStore,
        model_name: str = "q_learning",
        reward_function: RewardFunction | None = None,
        tensorboard_path: str | None = TENSORBOARD_PATH,
    ):
        """
        Initialize the trainer.

        Args:
            environment (LearningEnvironment): Environment adapter to learn.
            store (QTableStore): Store receiving trained tables.
            model_name (str): Stem used for TensorBoard runs and saved models.
            reward_function (RewardFunction | None): Custom reward shaping.
            tensorboard_path (str | None): TensorBoard root, ``None`` disables it.
        """
        super().__init__(model_name=model_name, environment=environment, tensorboard_path=tensorboard_path)
        self.store = store
        self.reward_function = reward_function
        self.epsilon = 0.0
        self.rng = random.Random()
        self.model = None

    def train(
        self,
        goal: Goal | Iterable[Any],
        episodes: int,
        alpha: float,
        gamma: float,
        epsilon: float,
        reward: float = 1.0,
        cancel_event: threading.Event | None = None,
        **options,
    ) -> ModelQTable:
        """
        Validate parameters, train a Q-table for ``goal`` and store it.

        Args:
            goal: Goal or raw goal description, e.g. ``[2, 3]``.
            episodes (int): Number of episodes, > 0.
            alpha (float): Learning rate in [0, 1].
            gamma (float): Discount factor in [0, 1].
            epsilon (float): Exploration probability in [0, 1].
            reward (float): Goal reward of the ``terminal`` reward mode.
            cancel_event (threading.Event | None): Set it to abort training.
            **options: Remaining `TrainingConfig` fields (``reward_mode``,
                ``step_penalty``, ``max_steps``, ``epsilon_decay``,
                ``epsilon_min``, ``seed``).

        Returns:
            ModelQTable: The published, read-only table.

        Raises:
            InvalidParameter: Before any training if a parameter is invalid or unknown.
        """
        known = {field.name for field in dataclasses.fields(TrainingConfig)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise InvalidParameter(f"Unknown training options: {', '.join(unknown)}.")
        config = TrainingConfig(episodes=episodes, alpha=alpha, gamma=gamma, epsilon=epsilon, reward=reward, **options)
        return self.run(as_goal(goal), config, cancel_event=cancel_event)

    def policy(self, q_table: np.ndarray, state_index: int, actions: list[int]) -> int:
        """
        ε-greedy action selection among the applicable actions.

        Returns:
            int: Selected action index.

        Raises:
            InvalidParameter: If no action is applicable in ``state_index``.
        """
        if not actions:
            raise InvalidParameter(f"No applicable action in state {state_index}.")
        if self.epsilon > 0.0 and self.rng.random() < self.epsilon:
            action = self.rng.choice(actions)
            logger().debug(f"Taking random action {action} for state {state_index}")
        else:
            action = greedy_action(q_table[state_index], actions)
            logger().debug(f"Taking best action {action} for state {state_index} with Q-value {q_table[state_index][action]}")
        return int(action)

    def update_q_table(
        self,
        q_table: np.ndarray,
        config: TrainingConfig,
        state_index: int,
        action: int,
        reward: float,
        next_state_index: int,
        terminated: bool = False,
    ) -> None:
        """Apply one Q-learning TD update in place.

            Q(s, a) ← Q(s, a) + α [ r + γ Q(s', a*) − Q(s, a) ]

        where ``a*`` is the greedy action among those applicable in ``s'``.
        When ``s'`` is terminal the target reduces to ``r``.
        """
        if terminated:
            td_target = reward
        else:
            next_actions = self.environment.applicable_actions(next_state_index)
            best_next_action = greedy_action(q_table[next_state_index], next_actions)
            td_target = reward + config.gamma * q_table[next_state_index][best_next_action]
        td_error = td_target - q_table[state_index][action]
        q_table[state_index][action] += config.alpha * td_error

    def simulation(
        self,
        episode: int,
        goal: Goal,
        compatible: frozenset[int],
        q_table: np.ndarray,
        config: TrainingConfig,
        reward_function: RewardFunction,
        cancel_event: threading.Event | None = None,
    ) -> tuple[float, int]:
        """Run one training episode.

        Loop details:
          * Randomize the start state and read it.
          * Until the current state is goal-compatible: select an action,
            perform it, read the next state, compute the reward and update
            the Q-table, then advance.

        Returns:
            tuple[float, int]: Total reward and number of steps of the episode.

        Raises:
            EpisodeStepLimitExceeded: If ``config.max_steps`` steps did not
                reach the goal.
            TrainingCancelled: If ``cancel_event`` is set.
        """
        self.environment.randomize(self.rng)
        state_index = self.environment.current_state_index()
        total_reward = 0.0
        step = 0

        while state_index not in compatible:
            if cancel_event is not None and cancel_event.is_set():
                raise TrainingCancelled(f"Training for goal {goal} cancelled during episode {episode}.")
            if step >= config.max_steps:
                raise EpisodeStepLimitExceeded(episode, config.max_steps)

            actions = self.environment.applicable_actions(state_index)
            action = self.policy(q_table, state_index, actions)
            self.environment.perform_action(action)
            next_state_index = self.environment.current_state_index()

            terminated = next_state_index in compatible
            reward = reward_function(self.environment.state_at(next_state_index), goal, terminated)
            self.update_q_table(q_table, config, state_index, action, reward, next_state_index, terminated)

            total_reward += reward
            step += 1
            logger().debug(f"Episode: {episode} State: {next_state_index} Action: {action} Reward: {reward}")
            state_index = next_state_index

        return total_reward, step

    def run(self, goal: Goal, config: TrainingConfig, cancel_event: threading.Event | None = None) -> ModelQTable:
        """
        Train a fresh Q-table for ``goal`` and publish it into the store.

        Process per episode:
          1. Run one episode via simulation().
          2. Log reward, steps and ε to TensorBoard.
          3. Reset environment and decay ε.

        Args:
            goal (Goal): Target of the training.
            config (TrainingConfig): Validated hyper-parameters.
            cancel_event (threading.Event | None): Cooperative cancellation flag.

        Returns:
            ModelQTable: The published, read-only table.
        """
        goal = as_goal(goal)
        state_width = len(self.environment.state_at(0)) if self.environment.state_count() else 0
        if goal.features[-1] >= state_width:
            raise InvalidParameter(f"Goal {goal} constrains features beyond the state width {state_width}.")
        compatible = self.environment.compatible_states(goal)
        if not compatible:
            raise InvalidParameter(f"No state of the state space is compatible with goal {goal}.")

        reward_function = self.reward_function if self.reward_function is not None else reward_function_for(config)
        model = ModelQTable.allocate(self.environment.state_count(), self.environment.action_count())
        self.rng = random.Random(config.seed)
        self.epsilon = config.epsilon

        logger().info(
            f"Training goal {goal} for {config.episodes} episodes "
            f"(alpha={config.alpha}, gamma={config.gamma}, epsilon={config.epsilon}, mode={config.reward_mode})"
        )
        self.open_tb("goal_" + "_".join(f"{f}-{v}" for f, v in goal.key()))
        try:
            for episode in range(config.episodes):
                reward, steps = self.simulation(
                    episode, goal, compatible, model.q_table, config, reward_function, cancel_event
                )
                self.add_scalar("QLearning/Reward", reward, episode)
                self.add_scalar("QLearning/Steps", steps, episode)
                self.add_scalar("QLearning/Epsilon", self.epsilon, episode)
                self.environment.reset()
                logger().info(
                    f"Episode {episode + 1}/{config.episodes} completed in {steps} steps with "
                    f"epsilon {self.epsilon:.4f} and reward {reward}"
                )
                self.epsilon = max(config.epsilon_min, self.epsilon * config.epsilon_decay)
        except Exception as e:
            logger().error(f"Training for goal {goal} aborted, stored tables left untouched: {e}")
            raise
        finally:
            self.close_tb()

        logger().debug(model.format_table())
        self.store.put(goal.key(), model)
        self.model = model
        return model

    def save_model(self, directory: str = MODEL_PATH) -> str:
        """
        Persist the last trained Q-table using NumPy binary format (.npy).
        """
        if self.model is None:
            raise RuntimeError("Cannot save: no Q-table trained yet.")
        return self.model.save(self.model_name, directory)

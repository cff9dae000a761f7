"""
Reward shaping functions.

A reward function receives the state reached after an action, the goal and
whether that state is goal-compatible, and returns a scalar reward:

    reward_function(state, goal, terminated) -> float

Available shapings:
  * `DistanceReward`: dense, ``-gap`` where ``gap`` is the summed absolute
    difference between the state and the goal feature values. Zero on the goal,
    strictly decreasing with the gap, no division.
  * `ClippedInverseReward`: dense, ``scale / (1 + gap)`` in ``(0, scale]``.
  * `TerminalReward`: sparse, ``reward`` on reaching the goal and
    ``step_penalty`` on every other step.
"""

from collections.abc import Sequence
from typing import Protocol

from qlab.config import REWARD_MODE_DENSE, REWARD_MODE_TERMINAL, TrainingConfig
from qlab.environment.goal import Goal
from qlab.exceptions import InvalidParameter


class RewardFunction(Protocol):
    def __call__(self, state: Sequence[int], goal: Goal, terminated: bool) -> float: ...


class DistanceReward:
    """Negative distance between the reached state and the goal."""

    def __call__(self, state: Sequence[int], goal: Goal, terminated: bool) -> float:
        return -float(goal.gap(state))


class ClippedInverseReward:
    """Inverse distance, bounded by ``scale`` when the goal is reached."""

    def __init__(self, scale: float = 1.0):
        self.scale = scale

    def __call__(self, state: Sequence[int], goal: Goal, terminated: bool) -> float:
        return self.scale / (1.0 + goal.gap(state))


class TerminalReward:
    """Sparse reward granted only on goal-compatible states."""

    def __init__(self, reward: float, step_penalty: float = 0.0):
        self.reward = reward
        self.step_penalty = step_penalty

    def __call__(self, state: Sequence[int], goal: Goal, terminated: bool) -> float:
        return self.reward if terminated else self.step_penalty


def reward_function_for(config: TrainingConfig) -> RewardFunction:
    """Reward function selected by ``config.reward_mode``."""
    if config.reward_mode == REWARD_MODE_DENSE:
        return DistanceReward()
    if config.reward_mode == REWARD_MODE_TERMINAL:
        return TerminalReward(config.reward, config.step_penalty)
    raise InvalidParameter(f"Unknown reward mode {config.reward_mode!r}.")

"""
Abstract learning environment for tabular reinforcement learning.

This module provides:
- `LearningEnvironment`: Abstract base class defining the adapter contract the
  Q-learning engine requires from an environment: state/action space sizes,
  reading the current state, enumerating applicable actions, executing an
  action, resolving the states compatible with a goal, plus lifecycle helpers
  `reset()` and `randomize()`.

Subclasses should:
- Provide `state_space` and `action_space` enumerations.
- Implement `current_state_index()`, raising `SensorUnavailable` when the
  state cannot be read.
- Implement `perform_action()`, blocking until the action has taken effect and
  raising `ActuationFailed` on transport or hardware errors.
- Implement `applicable_actions()`.

Attributes expected in concrete environments:
- `state_space`: Fixed `StateSpace` enumeration.
- `action_space`: Fixed `ActionSpace` enumeration.
"""

import random
from abc import ABC, abstractmethod
from typing import Any, Sequence

from qlab.environment.goal import Goal
from qlab.environment.space import Action, ActionSpace, State, StateSpace
from qlab.utils.logger import logger


class LearningEnvironment(ABC):
    """
    Abstract base class for environments learnt with a Q-table.

    Attributes:
        state_space (StateSpace): Enumeration of every discrete state.
        action_space (ActionSpace): Enumeration of every discrete action.
    """

    state_space: StateSpace
    action_space: ActionSpace

    def __init__(self, state_space: StateSpace, action_space: ActionSpace):
        """
        Initialize the environment core structures.

        Args:
            state_space (StateSpace): State enumeration; its order is frozen for
                the lifetime of every table trained against this environment.
            action_space (ActionSpace): Action enumeration.
        """
        self.state_space = state_space
        self.action_space = action_space
        logger().info(f"Initialized with a state space of n={self.state_count()}")
        logger().info(f"Initialized with an action space of m={self.action_count()}")

    def state_count(self) -> int:
        return len(self.state_space)

    def action_count(self) -> int:
        return len(self.action_space)

    def state_index_of(self, description: Sequence[Any]) -> int:
        """
        Resolve a raw state description to its index.

        Raises:
            UnknownState: If the description is not enumerated.
        """
        return self.state_space.index_of(description)

    def state_at(self, index: int) -> State:
        return self.state_space.state_at(index)

    def action_at(self, index: int) -> Action:
        """
        Resolve an action index to its metadata.

        Raises:
            UnknownAction: If the index is outside the action space.
        """
        return self.action_space.action_at(index)

    def compatible_states(self, goal: Goal) -> frozenset[int]:
        """
        Indices of every state satisfying the goal.

        Returns:
            frozenset[int]: Possibly empty set of state indices.
        """
        return frozenset(index for index, state in enumerate(self.state_space) if goal.is_satisfied_by(state))

    @abstractmethod
    def current_state_index(self) -> int:
        """
        Read the environment and return the index of its current state.

        Raises:
            SensorUnavailable: If the state cannot be read.
        """
        raise NotImplementedError("Method current_state_index() not implemented.")

    @abstractmethod
    def applicable_actions(self, state_index: int) -> list[int]:
        """
        Ordered indices of the actions that can be executed from a state.

        Args:
            state_index (int): Index in `state_space`.

        Returns:
            list[int]: Non-empty list of action indices.
        """
        raise NotImplementedError("Method applicable_actions() not implemented.")

    @abstractmethod
    def perform_action(self, action_index: int) -> None:
        """
        Execute an action and wait until its effect is observable.

        Raises:
            UnknownAction: If the index is outside the action space.
            ActuationFailed: If the action could not be executed.
        """
        raise NotImplementedError("Method perform_action() not implemented.")

    def reset(self) -> None:
        """
        Bring the environment back to its episode start configuration.

        Real environments usually cannot be reset; the default does nothing.
        """
        logger().debug("Environment reset requested, nothing to do.")

    def randomize(self, rng: random.Random) -> None:
        """Perform one random applicable action to diversify the episode start state.

        Args:
            rng (random.Random): Random generator owned by the trainer.
        """
        actions = self.applicable_actions(self.current_state_index())
        if actions:
            action = rng.choice(actions)
            logger().debug(f"Randomizing start state with action {action}")
            self.perform_action(action)

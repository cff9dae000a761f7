"""
Base controller abstractions.

This module defines `BaseController`, an abstract interface for controllers
that drive a `LearningEnvironment` with a perception-decision-action loop.

Responsibilities:
- Observing the current state (`observe()`).
- Selecting actions via a policy (`policy()`).
- Executing actions on the environment (`act()`).
- Running the loop until a goal is reached (`run()`).
"""

from abc import ABC, abstractmethod

from qlab.environment import LearningEnvironment
from qlab.environment.goal import Goal, as_goal
from qlab.exceptions import EpisodeStepLimitExceeded
from qlab.utils.logger import logger


class BaseController(ABC):
    """
    Abstract base class for environment controllers.

    Attributes:
        environment (LearningEnvironment): Controlled environment.
    """

    environment: LearningEnvironment

    def __init__(self, environment: LearningEnvironment):
        self.environment = environment

    def observe(self) -> int:
        """
        Read the current state index of the environment.

        Raises:
            SensorUnavailable: Propagated from the environment.
        """
        return self.environment.current_state_index()

    @abstractmethod
    def policy(self, goal: Goal, state_index: int) -> int:
        """
        Decide an action for the current state.

        Returns:
            int: Action index.
        """
        raise NotImplementedError("Method policy() not implemented.")

    def act(self, action: int) -> None:
        """
        Execute the chosen action on the environment.

        Raises:
            ActuationFailed: Propagated from the environment.
        """
        self.environment.perform_action(action)

    def step(self, goal: Goal) -> int:
        """
        Perform one perception-decision-action cycle.

        Returns:
            int: The executed action index.
        """
        state_index = self.observe()
        action = self.policy(goal, state_index)
        self.act(action)
        return action

    def run(self, goal: Goal, max_steps: int) -> int:
        """
        Step until the environment reaches a goal-compatible state.

        Returns:
            int: Number of executed steps.

        Raises:
            EpisodeStepLimitExceeded: If the goal is not reached within ``max_steps``.
        """
        goal = as_goal(goal)
        compatible = self.environment.compatible_states(goal)
        step_index = 0
        while self.observe() not in compatible:
            if step_index >= max_steps:
                raise EpisodeStepLimitExceeded(0, max_steps)
            self.step(goal)
            step_index += 1
            logger().debug(f"Step index: {step_index}")
        logger().info(f"Goal {goal} reached after {step_index} step(s)")
        return step_index

import random

from qlab.environment import LearningEnvironment
from qlab.environment.space import Action, ActionSpace, StateSpace
from qlab.exceptions import ActuationFailed, SensorUnavailable

STEP, JUMP = 0, 1


class ChainEnvironment(LearningEnvironment):
    """Three states in a line; ``step`` toggles 0 <-> 1, ``jump`` reaches state 2 from anywhere."""

    def __init__(self):
        super().__init__(
            StateSpace([(0,), (1,), (2,)]),
            ActionSpace([Action("urn:step", ("Distance",), (1,)), Action("urn:jump", ("Target",), (2,))]),
        )
        self.position = 0
        self.performed = []

    def current_state_index(self) -> int:
        return self.position

    def applicable_actions(self, state_index: int) -> list[int]:
        return [STEP, JUMP]

    def perform_action(self, action_index: int) -> None:
        self.action_space.action_at(action_index)
        self.performed.append((self.position, action_index))
        if action_index == JUMP:
            self.position = 2
        elif self.position < 2:
            self.position = 1 - self.position

    def reset(self) -> None:
        self.position = 0

    def randomize(self, rng: random.Random) -> None:
        self.position = rng.choice([0, 1])


class MaskedEnvironment(ChainEnvironment):
    """Chain where ``jump`` is only applicable from state 1."""

    def applicable_actions(self, state_index: int) -> list[int]:
        return [STEP, JUMP] if state_index == 1 else [STEP]


class StuckEnvironment(ChainEnvironment):
    """Chain where state 1 offers no action at all."""

    def applicable_actions(self, state_index: int) -> list[int]:
        return [] if state_index == 1 else [STEP, JUMP]

    def randomize(self, rng: random.Random) -> None:
        self.position = 1


class FlakyEnvironment(ChainEnvironment):
    """Chain whose actuator or sensor fails once enough calls were made."""

    def __init__(self, fail_action_after: int | None = None, fail_sensor_after: int | None = None):
        super().__init__()
        self.fail_action_after = fail_action_after
        self.fail_sensor_after = fail_sensor_after
        self.reads = 0

    def current_state_index(self) -> int:
        self.reads += 1
        if self.fail_sensor_after is not None and self.reads > self.fail_sensor_after:
            raise SensorUnavailable("sensor offline")
        return super().current_state_index()

    def perform_action(self, action_index: int) -> None:
        if self.fail_action_after is not None and len(self.performed) >= self.fail_action_after:
            raise ActuationFailed("actuator offline")
        super().perform_action(action_index)


class ForkEnvironment(LearningEnvironment):
    """One start state and two goal-compatible states, told apart by their second feature."""

    def __init__(self):
        super().__init__(
            StateSpace([(0, 0), (1, 0), (1, 1)]),
            ActionSpace([Action("urn:left"), Action("urn:right")]),
        )
        self.position = 0

    def current_state_index(self) -> int:
        return self.position

    def applicable_actions(self, state_index: int) -> list[int]:
        return [0, 1]

    def perform_action(self, action_index: int) -> None:
        self.action_space.action_at(action_index)
        self.position = 1 + action_index

    def reset(self) -> None:
        self.position = 0

    def randomize(self, rng: random.Random) -> None:
        pass

"""
Simulated two-zone lab environment.

Overview:
    An in-process stand-in for the physical lab: two lighting zones, each with
    a ceiling light and window blinds, lit by an exogenous sunshine level.
    The environment supplies:
      * A `StateSpace` over `(z1_level, z2_level, z1_light, z2_light,
        z1_blinds, z2_blinds, sunshine)` where the switches are 0/1.
      * An `ActionSpace` of eight set-actions (each light and each blind set
        to on/open or off/closed).
      * Deterministic dynamics used for training and evaluation.

Light level of a zone:
    min(MAX_LEVEL, LIGHT_CONTRIBUTION * light + sunshine * blinds)

Goals are usually expressed on the two level features, e.g. ``[2, 3]``.
"""

import itertools

from qlab.environment import LearningEnvironment
from qlab.environment.goal import Goal
from qlab.environment.space import Action, ActionSpace, State, StateSpace
from qlab.exceptions import InvalidParameter
from qlab.utils.logger import logger

ACTION_TAG_PREFIX = "http://example.org/was#"
MAX_LEVEL = 3
MAX_SUNSHINE = 3
LIGHT_CONTRIBUTION = 2

# same order as the switch features of a state tuple
SWITCHES = ("Z1Light", "Z2Light", "Z1Blinds", "Z2Blinds")


def zone_level(light: int, blinds: int, sunshine: int) -> int:
    return min(MAX_LEVEL, LIGHT_CONTRIBUTION * light + sunshine * blinds)


def build_state(z1_light: int, z2_light: int, z1_blinds: int, z2_blinds: int, sunshine: int) -> State:
    return (
        zone_level(z1_light, z1_blinds, sunshine),
        zone_level(z2_light, z2_blinds, sunshine),
        z1_light,
        z2_light,
        z1_blinds,
        z2_blinds,
        sunshine,
    )


def lab_state_space() -> StateSpace:
    """Enumerate every consistent lab state, switches first, sunshine last."""
    return StateSpace(
        build_state(z1_light, z2_light, z1_blinds, z2_blinds, sunshine)
        for z1_light, z2_light, z1_blinds, z2_blinds in itertools.product((0, 1), repeat=4)
        for sunshine in range(MAX_SUNSHINE + 1)
    )


def lab_action_space() -> ActionSpace:
    """Two actions per switch: set to ``True`` then set to ``False``."""
    return ActionSpace(
        Action(tag=f"{ACTION_TAG_PREFIX}Set{name}", payload_tags=(name,), payload=(value,))
        for name in SWITCHES
        for value in (True, False)
    )


class SimulatedLab(LearningEnvironment):
    """
    Deterministic lab simulator.

    Action ``2 * k`` turns switch ``k`` on and ``2 * k + 1`` turns it off, in the
    order Z1Light, Z2Light, Z1Blinds, Z2Blinds. Every action is applicable in
    every state.

    Args:
        sunshine (int): Exogenous sunshine level in ``[0, MAX_SUNSHINE]``.
        lights (tuple[bool, bool]): Initial zone 1 / zone 2 light switches.
        blinds (tuple[bool, bool]): Initial zone 1 / zone 2 blinds.
    """

    sunshine: int
    switches: list[int]
    initial_switches: tuple[int, ...]

    def __init__(
        self,
        sunshine: int = 2,
        lights: tuple[bool, bool] = (False, False),
        blinds: tuple[bool, bool] = (False, False),
    ):
        if not 0 <= sunshine <= MAX_SUNSHINE:
            raise InvalidParameter(f"sunshine must be within [0, {MAX_SUNSHINE}], got {sunshine}.")
        super().__init__(lab_state_space(), lab_action_space())
        self.sunshine = int(sunshine)
        self.initial_switches = tuple(int(bool(v)) for v in (*lights, *blinds))
        self.switches = list(self.initial_switches)

    def state(self) -> State:
        return build_state(*self.switches, self.sunshine)

    def current_state_index(self) -> int:
        return self.state_space.index_of(self.state())

    def compatible_states(self, goal: Goal) -> frozenset[int]:
        """Goal-satisfying states at this lab's sunshine level, the only ones it can reach."""
        compatible = super().compatible_states(goal)
        return frozenset(index for index in compatible if self.state_at(index)[-1] == self.sunshine)

    def applicable_actions(self, state_index: int) -> list[int]:
        # setting a switch to its current value is a legal no-op
        self.state_space.state_at(state_index)
        return list(range(self.action_count()))

    def perform_action(self, action_index: int) -> None:
        action = self.action_space.action_at(action_index)
        k, off = divmod(int(action_index), 2)
        self.switches[k] = 0 if off else 1
        logger().debug(f"Performed {action.tag} {action.payload}, state is now {self.state()}")

    def reset(self) -> None:
        """Restore the initial switch configuration."""
        self.switches = list(self.initial_switches)
        logger().debug(f"Lab reset to {self.state()}")

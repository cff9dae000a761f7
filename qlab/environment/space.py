"""
Discrete state and action spaces.

Both spaces are fixed enumerations: an element's identity is its index, and
indices stay valid for as long as the space object exists. Trained Q-tables
are only meaningful against the exact enumeration they were trained on.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from qlab.environment.goal import normalize_description
from qlab.exceptions import UnknownAction, UnknownState

State = tuple[int, ...]


@dataclass(frozen=True)
class Action:
    """
    Executable command of the environment.

    Attributes:
        tag (str): Semantic annotation of the action,
            e.g. ``"http://example.org/was#SetZ1Light"``.
        payload_tags (tuple[str, ...]): Semantic annotation of each payload slot.
        payload (tuple[Any, ...]): Values sent when the action is invoked.
    """

    tag: str
    payload_tags: tuple[str, ...] = ()
    payload: tuple[Any, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "payload_tags", tuple(self.payload_tags))
        object.__setattr__(self, "payload", tuple(self.payload))


class StateSpace:
    """
    Ordered, deduplicated enumeration of discrete states.

    Descriptions are normalized (booleans become 0/1) before being enumerated
    or looked up, so ``(2, 2, True, False)`` and ``(2, 2, 1, 0)`` address the
    same state.
    """

    def __init__(self, states: Iterable[Sequence[Any]]):
        self._states: list[State] = []
        self._index: dict[State, int] = {}
        for description in states:
            state = normalize_description(description)
            if state not in self._index:
                self._index[state] = len(self._states)
                self._states.append(state)

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self):
        return iter(self._states)

    def __contains__(self, description: Sequence[Any]) -> bool:
        try:
            self.index_of(description)
        except (UnknownState, ValueError):
            return False
        return True

    def state_at(self, index: int) -> State:
        if not 0 <= index < len(self._states):
            raise UnknownState(f"State index {index} outside [0, {len(self._states)}).")
        return self._states[index]

    def index_of(self, description: Sequence[Any]) -> int:
        """
        Index of a state description.

        Raises:
            UnknownState: If the description is not enumerated. No nearest
                match is attempted.
        """
        state = normalize_description(description)
        try:
            return self._index[state]
        except KeyError:
            raise UnknownState(f"State {state} is not part of the state space.") from None


class ActionSpace:
    """Ordered, immutable list of actions addressed by index."""

    def __init__(self, actions: Iterable[Action]):
        self._actions: tuple[Action, ...] = tuple(actions)

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self):
        return iter(self._actions)

    def action_at(self, index: int) -> Action:
        if isinstance(index, bool) or not 0 <= index < len(self._actions):
            raise UnknownAction(f"Action index {index} outside [0, {len(self._actions)}).")
        return self._actions[index]

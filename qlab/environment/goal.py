"""
Goal descriptions and their canonical keys.

A goal is a partial target configuration: desired values for a subset of the
state features. Q-tables are stored per goal, so the key derived from a goal
must not depend on how its values were represented by the caller
(``2``, ``np.int8(2)``, ``2.0`` and ``"2"`` all give the same key). Every
conversion goes through :func:`normalize_value`, used for goals and state
descriptions alike.
"""

import numbers
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from qlab.exceptions import InvalidParameter

GoalKey = tuple[tuple[int, int], ...]


def normalize_value(value: Any) -> int:
    """
    Convert a discrete feature value to a plain ``int``.

    Accepted inputs are booleans (encoded 0/1), Python or NumPy integers,
    integral floats and strings holding an integer.

    Raises:
        InvalidParameter: If the value is not a discrete integer value.
    """
    if isinstance(value, (bool, np.bool_)):
        return int(bool(value))
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        if float(value).is_integer():
            return int(value)
        raise InvalidParameter(f"Feature value {value!r} is not integral.")
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise InvalidParameter(f"Feature value {value!r} is not an integer.") from None
    raise InvalidParameter(f"Unsupported feature value {value!r} of type {type(value).__name__}.")


def normalize_description(description: Iterable[Any]) -> tuple[int, ...]:
    """Normalize every element of a state description with :func:`normalize_value`."""
    if isinstance(description, (str, bytes)):
        raise InvalidParameter(f"A description must be a sequence of values, got {description!r}.")
    return tuple(normalize_value(value) for value in description)


@dataclass(frozen=True)
class Goal:
    """
    Desired values for a subset of state features.

    Attributes:
        features (tuple[int, ...]): Positions of the constrained features in a
            state tuple, strictly increasing.
        values (tuple[int, ...]): Desired value for each entry of ``features``.
    """

    features: tuple[int, ...]
    values: tuple[int, ...]

    @classmethod
    def of(cls, values: Iterable[Any], features: Iterable[Any] | None = None) -> "Goal":
        """
        Build a goal from a raw description.

        Args:
            values: Desired feature values, e.g. ``[2, 3]`` for zone levels.
            features: Positions constrained by ``values``; defaults to the
                leading features ``0 .. len(values) - 1``.

        Raises:
            InvalidParameter: On empty, mismatched, duplicated, negative or
                non-integral entries.
        """
        values = normalize_description(values)
        if not values:
            raise InvalidParameter("A goal must constrain at least one feature.")
        features = tuple(range(len(values))) if features is None else normalize_description(features)
        if len(features) != len(values):
            raise InvalidParameter(f"Goal has {len(features)} features but {len(values)} values.")
        if len(set(features)) != len(features) or min(features) < 0:
            raise InvalidParameter(f"Goal features {features} must be distinct non-negative positions.")
        pairs = sorted(zip(features, values))
        return cls(features=tuple(f for f, _ in pairs), values=tuple(v for _, v in pairs))

    def key(self) -> GoalKey:
        """Canonical, hashable key of the goal."""
        return tuple(zip(self.features, self.values))

    def gap(self, state: Sequence[int]) -> int:
        """Sum of absolute differences between the state and the desired values."""
        return sum(abs(int(state[f]) - v) for f, v in zip(self.features, self.values))

    def is_satisfied_by(self, state: Sequence[int]) -> bool:
        return all(int(state[f]) == v for f, v in zip(self.features, self.values))

    def __str__(self) -> str:
        return "[" + ", ".join(f"{f}={v}" for f, v in zip(self.features, self.values)) + "]"


def as_goal(goal: "Goal | Iterable[Any]") -> Goal:
    """Return ``goal`` unchanged if already a :class:`Goal`, else parse it with :meth:`Goal.of`."""
    if isinstance(goal, Goal):
        return goal
    return Goal.of(goal)


def goal_key(goal: "Goal | Iterable[Any]") -> GoalKey:
    """Shared normalization used by both training and querying to address Q-tables."""
    return as_goal(goal).key()

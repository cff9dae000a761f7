"""
Error types raised by the Q-learning engine.

Environment adapters raise ``SensorUnavailable`` / ``ActuationFailed``; the
trainer lets them propagate untouched so a failed run never publishes a table.
Lookup failures derive from ``NotFound`` (a ``LookupError``) and parameter
validation failures from ``InvalidParameter`` (a ``ValueError``), so callers can
also catch them with the built-in categories.
"""


class QLabError(Exception):
    """Base class for every error raised by this package."""


class InvalidParameter(QLabError, ValueError):
    """A training parameter, goal or state value is malformed or out of range."""


class NotFound(QLabError, LookupError):
    """An index or description does not resolve to an enumerated element."""


class UnknownState(NotFound):
    """The state description is not part of the enumerated state space."""


class UnknownAction(NotFound):
    """The action index is outside the action space."""


class NoPolicyForGoal(NotFound):
    """No trained Q-table exists for the requested goal."""


UnknownGoal = NoPolicyForGoal


class EnvironmentFailure(QLabError, RuntimeError):
    """Base class for failures reported by an environment adapter."""


class SensorUnavailable(EnvironmentFailure):
    """The current state could not be read."""


class ActuationFailed(EnvironmentFailure):
    """An action could not be executed."""


class EpisodeStepLimitExceeded(QLabError, RuntimeError):
    """An episode did not reach a goal-compatible state within its step ceiling."""

    def __init__(self, episode: int, max_steps: int):
        super().__init__(f"Episode {episode} did not reach the goal within {max_steps} steps.")
        self.episode = episode
        self.max_steps = max_steps


class TrainingCancelled(QLabError, RuntimeError):
    """Training was interrupted through its cancellation event."""

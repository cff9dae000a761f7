"""
Runtime configuration.

Output directories are resolved once at import time from environment
variables, falling back to ``./output``:

    QLAB_OUTPUT_PATH       root of every generated artifact
    QLAB_MODEL_PATH        persisted Q-tables (``.npy`` / ``.npz``)
    QLAB_TENSORBOARD_PATH  TensorBoard event files
    QLAB_LOG_DIR           rotating log files

``TrainingConfig`` carries the typed hyper-parameters of one training run and
rejects invalid values on construction, before any table is allocated.
"""

import math
import numbers
import os
from dataclasses import dataclass

from qlab.exceptions import InvalidParameter

OUTPUT_PATH = os.getenv("QLAB_OUTPUT_PATH", os.path.join(os.getcwd(), "output"))
MODEL_PATH = os.getenv("QLAB_MODEL_PATH", os.path.join(OUTPUT_PATH, "model"))
TENSORBOARD_PATH = os.getenv("QLAB_TENSORBOARD_PATH", os.path.join(OUTPUT_PATH, "train"))
LOG_DIR = os.getenv("QLAB_LOG_DIR", os.path.join(OUTPUT_PATH, "logs"))

REWARD_MODE_DENSE = "dense"
REWARD_MODE_TERMINAL = "terminal"
REWARD_MODES = (REWARD_MODE_DENSE, REWARD_MODE_TERMINAL)

DEFAULT_MAX_STEPS = 1000


def _check_unit_interval(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameter(f"{name} must be a number, got {value!r}.")
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise InvalidParameter(f"{name} must be within [0, 1], got {value}.")
    return value


def _check_positive_int(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidParameter(f"{name} must be an integer, got {value!r}.")
    if value <= 0:
        raise InvalidParameter(f"{name} must be > 0, got {value}.")
    return int(value)


@dataclass(frozen=True)
class TrainingConfig:
    """
    Hyper-parameters of a single Q-learning run.

    Attributes:
        episodes (int): Number of episodes, > 0.
        alpha (float): Learning rate in [0, 1].
        gamma (float): Discount factor in [0, 1].
        epsilon (float): Exploration probability in [0, 1].
        reward (float): Reward granted on reaching the goal in ``terminal`` mode.
        reward_mode (str): ``dense`` (distance shaped, per step) or ``terminal``.
        step_penalty (float): Reward of non-terminal steps in ``terminal`` mode.
        max_steps (int): Step ceiling per episode, > 0.
        epsilon_decay (float): Multiplicative ε decay per episode in [0, 1];
            1.0 keeps ε constant.
        epsilon_min (float): Lower bound of the decayed ε in [0, 1].
        seed (int | None): Seed of the exploration random generator.
    """

    episodes: int
    alpha: float
    gamma: float
    epsilon: float
    reward: float = 1.0
    reward_mode: str = REWARD_MODE_DENSE
    step_penalty: float = 0.0
    max_steps: int = DEFAULT_MAX_STEPS
    epsilon_decay: float = 1.0
    epsilon_min: float = 0.0
    seed: int | None = None

    def __post_init__(self):
        # frozen dataclass: normalized values are written through object.__setattr__
        for name in ("episodes", "max_steps"):
            object.__setattr__(self, name, _check_positive_int(name, getattr(self, name)))
        for name in ("alpha", "gamma", "epsilon", "epsilon_decay", "epsilon_min"):
            object.__setattr__(self, name, _check_unit_interval(name, getattr(self, name)))
        for name in ("reward", "step_penalty"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise InvalidParameter(f"{name} must be a finite number, got {value!r}.")
            object.__setattr__(self, name, float(value))
        if self.reward_mode not in REWARD_MODES:
            raise InvalidParameter(f"reward_mode must be one of {REWARD_MODES}, got {self.reward_mode!r}.")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, numbers.Integral)):
            raise InvalidParameter(f"seed must be an integer or None, got {self.seed!r}.")

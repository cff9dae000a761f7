"""
Tabular Q-table model utilities.

Provides a persistable NumPy-backed Q-table indexed by ``(state, action)``
and the greedy selection rule shared by training and policy extraction.

Notes:
  * Tie-break: among equally valued candidates the lowest action index wins,
    both when the trainer picks an action and when a policy is queried.
  * The table is allocated zero-filled by :meth:`ModelQTable.allocate`;
    :meth:`ModelQTable.freeze` marks it read-only once training is done.
  * This class is agnostic to the learning algorithm; update logic resides
    in the trainer classes.
"""

import os
from collections.abc import Sequence

import numpy as np
from qlab.config import MODEL_PATH
from qlab.exceptions import InvalidParameter
from qlab.model import Model
from qlab.utils.logger import logger


def greedy_action(action_values: np.ndarray, candidates: Sequence[int] | None = None) -> int:
    """
    Index of the highest valued action, lowest index winning ties.

    Args:
        action_values (np.ndarray): One row of the Q-table.
        candidates (Sequence[int] | None): Restrict the scan to these action
            indices; ``None`` scans the whole row.

    Returns:
        int: Selected action index.

    Raises:
        InvalidParameter: If ``candidates`` is empty, i.e. the state has no applicable action.
    """
    if candidates is None:
        return int(np.argmax(action_values))
    if len(candidates) == 0:
        raise InvalidParameter("Cannot select an action among zero candidates.")
    ordered = np.sort(np.asarray(candidates, dtype=int))
    return int(ordered[np.argmax(action_values[ordered])])


class ModelQTable(Model):
    """Persistable tabular Q-table.

    Attributes:
        q_table (np.ndarray | None): Array of shape
            ``(state_count, action_count)``; must be allocated before
            :meth:`save` is called.
    """

    q_table: np.ndarray | None

    def __init__(self, q_table: np.ndarray | None = None):
        self.q_table = q_table

    @classmethod
    def allocate(cls, state_count: int, action_count: int) -> "ModelQTable":
        """Create a model holding a zero-initialized ``float64`` table."""
        return cls(np.zeros((state_count, action_count), dtype=np.float64))

    @property
    def shape(self) -> tuple[int, int]:
        if self.q_table is None:
            raise RuntimeError("q_table is not allocated.")
        return self.q_table.shape

    def freeze(self) -> None:
        """Make the table read-only; further in-place updates raise ``ValueError``."""
        if self.q_table is None:
            raise RuntimeError("Cannot freeze: q_table is None.")
        self.q_table.flags.writeable = False

    def best_action(self, state_index: int, candidates: Sequence[int] | None = None) -> int:
        """Greedy action of a state, see :func:`greedy_action`."""
        return greedy_action(self.q_table[state_index], candidates)

    def load(self, name: str, directory: str = MODEL_PATH) -> None:
        """
        Load a persisted Q-table from disk.

        Args:
            name (str): Base filename (without extension) located under ``directory``.
            directory (str): Directory holding the ``.npy`` file.
        """
        path = os.path.join(directory, name + ".npy")
        self.q_table = np.load(path, allow_pickle=False)
        logger().info(f"Model loaded successfully from {path}")

    def save(self, name: str, directory: str = MODEL_PATH) -> str:
        """
        Persist the current Q-table to disk.

        Args:
            name (str): Base filename (without extension) for the output `.npy`.
            directory (str): Output directory, created if missing.

        Raises:
            RuntimeError: If `q_table` is unset (`None`).
        """
        if self.q_table is None:
            raise RuntimeError("Cannot save: q_table is None.")
        os.makedirs(directory, exist_ok=True)
        model_path = os.path.join(directory, name + ".npy")
        np.save(model_path, self.q_table)
        logger().info(f"Model saved successfully at {model_path}")
        return model_path

    def format_table(self) -> str:
        """Render the table one state per line, e.g. for debug logs."""
        lines = ["Q matrix"]
        for index, row in enumerate(self.q_table):
            lines.append(f"From state {index}:  " + " ".join(f"{value:6.2f}" for value in row))
        return "\n".join(lines)

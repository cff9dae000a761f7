"""
Goal-keyed Q-table store.

The store is the single source of truth shared by trainers and policy
controllers: a mapping from canonical goal key to a finished, read-only
`ModelQTable`. Trainers only ``put`` fully trained tables, so readers never
observe a table mid-training. ``put`` replaces any table already stored under
the same key (last writer wins).

Persistence writes all tables into one ``.npz`` archive: for entry ``i`` the
goal key as an ``(n, 2)`` integer array ``key_i`` and the dense table
``table_i``. Loading restores keys and values exactly.
"""

import os
import threading

import numpy as np
from qlab.config import MODEL_PATH
from qlab.environment.goal import GoalKey
from qlab.model import Model
from qlab.model.q_table import ModelQTable
from qlab.utils.logger import logger


class QTableStore(Model):
    """Thread-safe mapping from goal key to trained Q-table."""

    def __init__(self):
        self._tables: dict[GoalKey, ModelQTable] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)

    def __contains__(self, key: GoalKey) -> bool:
        with self._lock:
            return key in self._tables

    def keys(self) -> list[GoalKey]:
        with self._lock:
            return list(self._tables)

    def get(self, key: GoalKey) -> ModelQTable | None:
        with self._lock:
            return self._tables.get(key)

    def put(self, key: GoalKey, model: ModelQTable) -> None:
        """
        Publish a finished table, replacing any previous one for ``key``.

        The table is frozen before publication.
        """
        model.freeze()
        with self._lock:
            replaced = key in self._tables
            self._tables[key] = model
        logger().info(f"Q-table for goal {key} {'replaced' if replaced else 'stored'}, shape {model.shape}")

    def save(self, name: str, directory: str = MODEL_PATH) -> str:
        """
        Persist every table into ``<directory>/<name>.npz``.

        Returns:
            str: Path of the written archive.
        """
        with self._lock:
            items = list(self._tables.items())
        arrays = {"count": np.array(len(items), dtype=np.int64)}
        for i, (key, model) in enumerate(items):
            arrays[f"key_{i}"] = np.array(key, dtype=np.int64).reshape(-1, 2)
            arrays[f"table_{i}"] = model.q_table
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, name + ".npz")
        np.savez(path, **arrays)
        logger().info(f"Q-table store with {len(items)} goal(s) saved at {path}")
        return path

    def load(self, name: str, directory: str = MODEL_PATH) -> None:
        """
        Replace the store content with the tables of ``<directory>/<name>.npz``.

        Raises:
            FileNotFoundError: If the archive does not exist.
            RuntimeError: If the archive is missing entries.
        """
        path = os.path.join(directory, name + ".npz")
        tables = {}
        with np.load(path, allow_pickle=False) as archive:
            if "count" not in archive.files:
                raise RuntimeError(f"{path} is not a Q-table store archive.")
            for i in range(int(archive["count"])):
                if f"key_{i}" not in archive.files or f"table_{i}" not in archive.files:
                    raise RuntimeError(f"{path} is missing entry {i}.")
                key = tuple((int(f), int(v)) for f, v in archive[f"key_{i}"])
                model = ModelQTable(np.array(archive[f"table_{i}"]))
                model.freeze()
                tables[key] = model
        with self._lock:
            self._tables = tables
        logger().info(f"Q-table store with {len(tables)} goal(s) loaded from {path}")

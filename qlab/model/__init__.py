"""
Model abstraction for persistent artifacts (Q-tables and Q-table stores).

Defines a simple interface to standardize loading and saving named resources
under a base directory, `MODEL_PATH` by default.

Responsibilities:
- Provide an abstract `load(name)` to retrieve a model artifact into memory.
- Provide an abstract `save(name)` to persist the current in-memory artifact.
"""

from abc import ABC, abstractmethod

from qlab.config import MODEL_PATH


class Model(ABC):
    """
    Abstract base class for a persistable model artifact.

    Subclass Guidelines:
    - Maintain internal state (e.g., arrays) after `load`.
    - Raise domain-specific exceptions on failure (e.g., FileNotFoundError, custom).
    """

    @abstractmethod
    def load(self, name: str, directory: str = MODEL_PATH) -> None:
        """
        Load a named artifact.

        Args:
            name (str): Logical model identifier, without extension.
            directory (str): Directory holding the artifact.

        Raises:
            FileNotFoundError: If the target file does not exist.
            RuntimeError: For format or integrity errors.
        """
        raise NotImplementedError("Method load() not implemented.")

    @abstractmethod
    def save(self, name: str, directory: str = MODEL_PATH) -> str:
        """
        Persist the current in-memory artifact.

        Args:
            name (str): Logical model identifier used to construct the output path.
            directory (str): Output directory, created if missing.

        Returns:
            str: Path of the written file.

        Raises:
            RuntimeError: If serialization or filesystem write fails.
        """
        raise NotImplementedError("Method save() not implemented.")

"""
Base trainer class for reinforcement learning models.

This module defines the abstract `Trainer` class, which manages model naming,
TensorBoard logging, and provides an interface for training and saving models.
Subclasses should implement the `run` and `save_model` methods.
"""

import os
import random
import string
from abc import ABC, abstractmethod

from qlab.config import TENSORBOARD_PATH
from qlab.environment import LearningEnvironment
from qlab.utils.logger import logger
from torch.utils.tensorboard import SummaryWriter


class Trainer(ABC):
    """
    Abstract base class for RL trainers.

    Handles model naming and TensorBoard logging setup.
    Subclasses must implement `run` and `save_model`.

    Attributes:
        environment: The learning environment.
        model_name: Unique name for the model instance.
        tensorboard_path: Root directory of TensorBoard runs, ``None`` disables logging.
        tb_writer: TensorBoard SummaryWriter of the current run, if any.
    """

    environment: LearningEnvironment
    model_name: str
    tensorboard_path: str | None
    tb_writer: SummaryWriter | None

    def __init__(self, model_name: str, environment: LearningEnvironment, tensorboard_path: str | None = TENSORBOARD_PATH):
        """
        Initialize trainer resources and create a unique session name.

        Parameters:
            model_name (str): Base human-readable identifier for this trainer.
            environment (LearningEnvironment): Environment used for interaction.
            tensorboard_path (str | None): Root directory for TensorBoard event files.
        """
        self.environment = environment
        self.model_name = f"{model_name}_{''.join(random.choices(string.ascii_letters + string.digits, k=4))}"
        self.tensorboard_path = tensorboard_path
        self.tb_writer = None

    def open_tb(self, run_name: str) -> None:
        """
        Open a TensorBoard writer for one training run.

        Parameters:
            run_name (str): Sub-directory of the run under ``tensorboard_path``.
        """
        if self.tensorboard_path is None:
            return
        tensorboard_dir = os.path.join(self.tensorboard_path, self.model_name, run_name)
        self.tb_writer = SummaryWriter(log_dir=tensorboard_dir)
        logger().info(f"TensorBoard logging to {tensorboard_dir}")

    def add_scalar(self, tag: str, value: float, step: int) -> None:
        if self.tb_writer is not None:
            self.tb_writer.add_scalar(tag, value, step)

    def close_tb(self) -> None:
        """
        Flush and close the TensorBoard writer.

        Should be called after training completes to ensure all events are persisted.
        """
        if self.tb_writer is None:
            return
        self.tb_writer.flush()
        self.tb_writer.close()
        self.tb_writer = None

    @abstractmethod
    def save_model(self, directory: str) -> str:
        """
        Save the model to disk.

        Must be implemented by subclasses.
        """
        raise NotImplementedError("Method save_model() not implemented.")

    @abstractmethod
    def run(self, goal, config):
        """
        Run the training process for a goal.

        Parameters:
            goal: Target the model is trained for.
            config: Hyper-parameters of the run.

        Must be implemented by subclasses.
        """
        raise NotImplementedError("Method run() not implemented.")

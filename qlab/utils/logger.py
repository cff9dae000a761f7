"""
Logger Configuration Module for Q-Lab

This module provides a centralized logging configuration for the Q-learning engine.
It supports both console and file logging with rotating file handlers to manage log file sizes.

Example:
    Basic usage with console and file logging:

    ```python
    from qlab.utils.logger import logger

    logger.add_console_logger(logging.INFO)
    logger.add_file_logger(logging.DEBUG)
    logger().warning("Goal unreachable from current state")
    ```
"""

import logging.handlers
import os
from datetime import datetime

from qlab.config import LOG_DIR


class Logger:
    """
    A wrapper class for Python's logging module with support for console and file handlers.

    Calling the instance returns the underlying ``logging.Logger`` so modules log
    through ``logger().info(...)``.

    Attributes:
        logger (logging.Logger): The underlying Python logger instance
        formatter (logging.Formatter): The formatter used for all log messages
    """

    logger: logging.Logger
    formatter: logging.Formatter

    def __init__(self):
        """
        Initialize the Logger with a configured logger instance.

        Sets up the base logger with DEBUG level and a timestamp-based formatter.
        Prevents log propagation to avoid duplicate messages.
        """
        self.logger = logging.getLogger("QLabLogger")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self.formatter = logging.Formatter(
            fmt="%(asctime)s - %(module)s.%(funcName)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

    def __call__(self) -> logging.Logger:
        return self.logger

    def add_console_logger(self, level: int) -> None:
        """
        Add a console (stderr) handler to the logger.

        Args:
            level (int): Minimum logging level for console output.
                Use logging.DEBUG, logging.INFO, logging.WARNING,
                logging.ERROR, or logging.CRITICAL.
        """
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(self.formatter)
        self.logger.addHandler(console_handler)

    def add_file_logger(self, level: int, log_dir: str = LOG_DIR) -> str:
        """
        Add a rotating file handler to the logger.

        Creates the log directory if it doesn't exist and sets up a rotating
        file handler with automatic log rotation when files reach 10MB.

        Args:
            level (int): Minimum logging level for file output.
            log_dir (str): Directory receiving the log files.

        Returns:
            str: Path of the log file.

        Note:
            - Log files are named with an hourly timestamp: qlab_YYYYMMDDHH.log
            - Maximum file size: 10MB
            - Backup count: 5 files
        """
        os.makedirs(log_dir, exist_ok=True)
        file_name = os.path.join(log_dir, f"qlab_{datetime.now().strftime('%Y%m%d%H')}.log")
        file_handler = logging.handlers.RotatingFileHandler(file_name, maxBytes=10 * 1024 * 1024, backupCount=5)  # 10MB
        file_handler.setLevel(level)
        file_handler.setFormatter(self.formatter)
        self.logger.addHandler(file_handler)
        return file_name

    def clear_handlers(self) -> None:
        """Detach and close every handler attached so far."""
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()


logger = Logger()

"""
Logging Configuration with Rotation

Keeps autotune sessions on a ground station from filling the disk.
"""

import logging
import logging.handlers
import os

LOGGER_NAME = 'autotune_system'


def setup_logging(log_dir: str = "/tmp/autotune_logs",
                  log_level: int = logging.INFO,
                  max_bytes: int = 5 * 1024 * 1024,  # 5 MB
                  backup_count: int = 3,
                  console_output: bool = True) -> logging.Logger:
    """
    Setup logging with rotation

    Handlers are attached to the package logger so every module logger
    created with ``logging.getLogger(__name__)`` inherits them.

    Args:
        log_dir: Directory to store log files
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        max_bytes: Maximum size of each log file before rotation
        backup_count: Number of backup files to keep
        console_output: Whether to also output to console

    Returns:
        Configured logger
    """
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    # Clear any existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # 1. Rotating file handler for general logs
    general_log = os.path.join(log_dir, 'autotune.log')
    file_handler = logging.handlers.RotatingFileHandler(
        general_log,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)  # Capture all levels in file
    file_handler.setFormatter(detailed_formatter)
    logger.addHandler(file_handler)

    # 2. Separate rotating handler for errors only
    error_log = os.path.join(log_dir, 'errors.log')
    error_handler = logging.handlers.RotatingFileHandler(
        error_log,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    logger.addHandler(error_handler)

    # 3. Console handler (optional)
    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(simple_formatter)
        logger.addHandler(console_handler)

    logger.debug(f"Log directory: {log_dir}")
    logger.debug(f"Log level: {logging.getLevelName(log_level)}")

    return logger


# -*- coding: utf-8 -*-
"""
Logger Module

This module provides logging utilities for the forest trainer.
"""

import os
import sys
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

# Default logs directory, created on first use
LOGS_DIR = Path(__file__).resolve().parent.parent.parent / "logs"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(app_name: str, log_level: int = logging.INFO,
                  log_dir: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Set up logging for the application

    Args:
        app_name: Name of the application for the log file
        log_level: Logging level (default: INFO)
        log_dir: Directory for the log file (default: LOGS_DIR)

    Returns:
        logging.Logger: Configured logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    log_dir = Path(log_dir) if log_dir is not None else LOGS_DIR
    os.makedirs(log_dir, exist_ok=True)

    # Create a unique log file with timestamp
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"{app_name}_{timestamp}.log"

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.info(f"Logging initialized for {app_name}")
    logger.info(f"Log file: {log_file}")

    return logger

# pump_bundler/utils/logger.py

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Attach one console handler (and optionally a file handler) to the package logger."""
    global _configured
    root = logging.getLogger("pump_bundler")
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if not _configured:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)
        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        _configured = True


def get_logger(name: str) -> logging.Logger:
    """Module loggers live under the package logger so one setup_logging() call covers them."""
    if not name.startswith("pump_bundler"):
        name = f"pump_bundler.{name}"
    return logging.getLogger(name)

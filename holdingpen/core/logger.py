"""Logger factory shared by every module.

Each module calls ``setup_logger(__name__)`` once at import. Pipeline stages take
a logger argument as well so tests and callers can hand them a specific one.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from holdingpen.config import env

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(threadName)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "holdingpen.log"


class CustomLogger(logging.Logger):
    """Logger with a helper for logging errors together with their traceback."""

    def error_trace(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        """Log an error message, including the active exception's traceback."""
        kwargs.setdefault("exc_info", True)
        self.error(msg, *args, **kwargs)


logging.setLoggerClass(CustomLogger)


def _level() -> int:
    return getattr(logging, env.LOG_LEVEL, logging.INFO)


def _configure_root_handlers() -> None:
    root = logging.getLogger("holdingpen")
    if root.handlers:
        return

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if env.ENABLE_LOGGING:
        env.LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            env.LOG_DIR / LOG_FILE_NAME,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(_level())

    # botocore is very chatty at DEBUG
    for noisy in ("botocore", "boto3", "s3transfer", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def setup_logger(name: str, level: Optional[int] = None) -> CustomLogger:
    """Return the named logger, configuring the package handlers on first use."""
    _configure_root_handlers()
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger  # type: ignore[return-value]


def set_level(level: int) -> None:
    """Change the level of the package logger (used by ``--debug``)."""
    logging.getLogger("holdingpen").setLevel(level)

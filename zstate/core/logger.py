"""Logging for zstate: a Rich console handler plus an optional log file.

Every module logger hangs off the "zstate" package logger, which carries the
handlers and the level; module loggers only propagate.
"""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE = "zstate"

# Remote command output goes to stdout; log lines stay on stderr
console = Console(stderr=True)

FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Set the zstate log level and (re)point file logging.

    Args:
        verbose: Log at DEBUG, which includes every remote command issued
        log_file: Also write detailed records to this file. A previously
            configured log file is replaced.
    """
    logger = _package_logger()
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    for handler in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
        logger.removeHandler(handler)
        handler.close()

    if not log_file:
        return

    path = Path(log_file)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
    except OSError as e:
        logger.warning(f"Cannot write log file {path}: {e}")
        return

    file_handler.setLevel(level)
    file_handler.setFormatter(FILE_FORMAT)
    logger.addHandler(file_handler)
    logger.debug(f"zstate logging to {path}")


def get_logger(name: str) -> logging.Logger:
    """Logger for a zstate module (typically __name__)."""
    _package_logger()
    return logging.getLogger(name)

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "replisync"
DEFAULT_LOG_NAME = "log.txt"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_log_file(log_path: Path) -> Path:
    """An existing file or a path with a suffix is the log file itself,
    anything else is a directory that holds `log.txt`."""
    path = log_path.expanduser()
    if path.is_file():
        return path
    if path.suffix and not path.is_dir():
        return path
    return path / DEFAULT_LOG_NAME


def setup_logger(
    log_path: Path | None,
    *,
    name: str = LOGGER_NAME,
    console: Console | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        log_time_format="[%X]",
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_path is None:
        logger.warning("No path for logs supplied, only logging to console.")
        return logger

    log_file = resolve_log_file(log_path).resolve()
    if not log_file.parent.exists():
        logger.warning(
            "Directory %s for logs does not exist, it will be created.", log_file.parent
        )
        log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=FILE_DATEFMT))
    file_handler.setLevel(level)
    logger.addHandler(file_handler)

    logger.info("Logging to: %s", log_file)
    return logger

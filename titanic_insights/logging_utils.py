from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable


LOGGER_NAME = "titanic_insights"
LOG_FILE_NAME = "app.log"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# uvicorn's startup and access lines go to the same file as the gateway's own
SERVER_LOGGERS = ("uvicorn",)


def log_file_path(log_dir: Path) -> Path:
    return log_dir / LOG_FILE_NAME


def setup_logging(
    log_dir: Path,
    log_level: int = logging.INFO,
    server_loggers: Iterable[str] = SERVER_LOGGERS,
) -> logging.Logger:
    """Configure the package logger once and return it.

    One rotating file handler and one stream handler are shared between the
    package logger and ``server_loggers``. Later calls return the configured
    logger untouched.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(LOGGER_NAME)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        filename=log_file_path(log_dir),
        maxBytes=2_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)

    targets = [logger, *(logging.getLogger(name) for name in server_loggers)]
    for target in targets:
        target.setLevel(log_level)
        target.addHandler(file_handler)
        target.addHandler(stream_handler)

    return logger


def tail_log(log_path: Path, max_lines: int = 200) -> str:
    if not log_path.exists():
        return "Log file does not exist yet."

    # Rotation can cut a multi-byte character in half
    with log_path.open("r", encoding="utf-8", errors="replace") as file:
        lines = file.readlines()

    return "".join(lines[-max_lines:]) if lines else "Log file is empty."

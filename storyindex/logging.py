"""Logging utilities for storyindex."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Set

_LOGGER_NAME = "storyindex"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the storyindex hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def warn_once(logger: logging.Logger, seen: Set[str], message: str, *args: object) -> None:
    """Emit a warning unless the formatted message is already recorded in ``seen``."""
    key = message % args if args else message
    if key in seen:
        return
    seen.add(key)
    logger.warning(message, *args)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the storyindex logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[storyindex] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger", "warn_once"]

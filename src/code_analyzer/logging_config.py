"""Centralized logging configuration for code-analyzer."""

import logging
import sys

# Libraries that log every HTTP round-trip or parser event at INFO/DEBUG.
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "chromadb", "tree_sitter")


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure app-wide logging. Call once at startup.

    level may be a logging constant or a name such as "DEBUG".
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

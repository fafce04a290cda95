"""Logging configuration for feedlink.

Logs go to stderr; stdout carries the rendered tables only.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

# Below DEBUG: every individual eth_call
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

NOISY_LOGGERS = ("web3", "urllib3", "aiohttp")


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps the level name in an ANSI color."""

    LEVEL_COLORS = {
        TRACE: "\033[90m",
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_color or color is None:
            return super().format(record)

        plain = record.levelname
        record.levelname = f"{color}{self.BOLD}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def _resolve_level(name: str) -> int:
    if name == "TRACE":
        return TRACE
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(log_level: str | None = None, stream: TextIO | None = None) -> None:
    """Configure the root logger.

    ``log_level`` wins over the LOG_LEVEL environment variable; both
    default to INFO. At DEBUG the HTTP stack stays at WARNING so batch
    summaries are readable; TRACE lets everything through.
    """
    name = (log_level or os.getenv("LOG_LEVEL") or "INFO").upper()
    level = _resolve_level(name)
    stream = stream or sys.stderr

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            use_color=stream.isatty(),
        )
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    third_party_level = TRACE if level == TRACE else max(level, logging.WARNING)
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(third_party_level)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with ``__name__``."""
    return logging.getLogger(name)

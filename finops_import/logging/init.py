from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Logging initialization with labeled prefixes.

Every line written by the tool starts with one of the labels
INFO|WARN|ERROR|SUMMARY. Module loggers (``logging.getLogger(__name__)``)
live under ``finops_import`` and propagate into the single stdout handler
installed here.

With ``--debug`` the DEBUG label is enabled too, and each line also names the
emitting module relative to the package (``DEBUG [services.currency] ...``)
so that parser, matcher and rate cache output can be told apart.
"""

__all__ = [
    "APP_LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "set_debug",
    "reset_logging",
]

APP_LOGGER_NAME = "finops_import"

# INFO(20) と WARNING(30) の間
SUMMARY_LEVEL = 25

# requests の接続ログは --debug でも出さない
QUIET_LIBRARY_LOGGERS = ("urllib3",)

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formats records as ``LABEL message`` (``LABEL [origin] message`` with origins on)."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def __init__(self, show_origin: bool = False) -> None:
        super().__init__()
        self.show_origin = show_origin

    @staticmethod
    def origin(name: str) -> str:
        prefix = APP_LOGGER_NAME + "."
        return name[len(prefix):] if name.startswith(prefix) else name

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        line = record.getMessage()
        if self.show_origin and record.name != APP_LOGGER_NAME:
            line = f"[{self.origin(record.name)}] {line}"
        return f"{label} {line}"


def setup_logging(stream: TextIO | None = None) -> logging.Logger:
    """Install the labeled stdout handler on the application logger.

    Calling it again returns the configured logger untouched. Propagation to
    the root logger is disabled to avoid duplicate lines.
    """
    global _logger
    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    for old in logger.handlers[:]:
        logger.removeHandler(old)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    for name in QUIET_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    return _logger if _logger is not None else setup_logging()


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def set_debug() -> None:
    """Enable DEBUG output and module origins on every app handler."""
    logger = get_logger()
    logger.setLevel(logging.DEBUG)
    for h in logger.handlers:
        h.setLevel(logging.DEBUG)
        if isinstance(h.formatter, LabeledFormatter):
            h.formatter.show_origin = True


def reset_logging() -> None:
    """Forget the configured logger (tests)."""
    global _logger
    _logger = None

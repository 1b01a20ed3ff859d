"""Loguru-backed logger adaptor shared by every datalake-sdk module."""

import sys
from typing import Any, Dict, Optional

from loguru import logger as _loguru_logger

from datalake_sdk.constants import LOG_LEVEL

_loggers: Dict[str, "DataLakeLogger"] = {}
_configured = False

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> <blue>[{level}]</blue> "
    "<cyan>{extra[logger_name]}</cyan> - <level>{message}</level>"
)


def _configure_sink() -> None:
    global _configured
    if _configured:
        return
    _loguru_logger.remove()
    _loguru_logger.configure(extra={"logger_name": "datalake_sdk"})
    _loguru_logger.add(sys.stderr, format=LOG_FORMAT, level=LOG_LEVEL, colorize=True)
    _configured = True


LOG_METHODS = frozenset(
    {"trace", "debug", "info", "success", "warning", "error", "critical", "exception"}
)


class DataLakeLogger:
    """Named view over loguru.

    Level methods (``info``, ``debug``, ``exception`` ...) resolve to the
    loguru logger bound with this logger's name, so every record carries
    ``extra["logger_name"]`` for the sink format.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._log = _loguru_logger.bind(logger_name=name)

    def __getattr__(self, attr: str) -> Any:
        if attr in LOG_METHODS:
            return getattr(self.__dict__["_log"], attr)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {attr!r}")


def get_logger(name: Optional[str] = None) -> DataLakeLogger:
    """Return the cached logger for ``name``, configuring the stderr sink once."""
    _configure_sink()
    if name is None:
        name = "datalake_sdk"
    if name not in _loggers:
        _loggers[name] = DataLakeLogger(name)
    return _loggers[name]


default_logger = get_logger()

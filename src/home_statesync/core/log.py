"""
Severity-gated logger used by the queue processor and the handler.

Debug tracing of the write queue is verbose (every enqueue, tick and timer
cleanup), so it can be switched off without touching logging configuration.
"""

import logging
from typing import Dict, Optional

_LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class StateLogger:
    """
    Thin wrapper around a stdlib logger.

    Attributes:
        debug_enabled: Emit debug messages (other severities always pass)
    """

    def __init__(self, logger: Optional[logging.Logger] = None, debug: bool = True) -> None:
        self._logger = logger or logging.getLogger("home_statesync")
        self.debug_enabled = debug

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def log(self, msg: str, severity: str = "info") -> None:
        """
        Emit a message with the given severity.

        Args:
            msg: The message
            severity: One of debug, info, warn, warning, error

        Raises:
            ValueError: If the severity is unknown
        """
        level = _LEVELS.get(severity)
        if level is None:
            raise ValueError(f"Unknown log severity '{severity}'")

        if severity != "debug" or self.debug_enabled:
            self._logger.log(level, msg)

    def debug(self, msg: str) -> None:
        self.log(msg, "debug")

    def info(self, msg: str) -> None:
        self.log(msg, "info")

    def warn(self, msg: str) -> None:
        self.log(msg, "warn")

    def error(self, msg: str) -> None:
        self.log(msg, "error")

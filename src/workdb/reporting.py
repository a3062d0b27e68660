"""Log configuration and the Reporter passed through the build pipeline"""

import logging
import sys
from typing import Optional, TextIO


LOGGER_NAME = "workdb"
LOG_FORMAT = "%(levelname)8s %(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Handler:
    """Install one stream handler on the workdb logger, replacing a previous one."""
    global _handler
    logger = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return _handler


class Reporter:
    """Routes diagnostics and build progress to a logger.

    Counts warnings and errors so callers can summarise a run without
    inspecting the log stream.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.warnings = 0
        self.errors = 0
        self.current = 0
        self.total = 0

    def debug(self, msg: str, *args) -> None:
        self.logger.debug(msg, *args)

    def info(self, msg: str, *args) -> None:
        self.logger.info(msg, *args)

    def warning(self, msg: str, *args) -> None:
        self.warnings += 1
        self.logger.warning(msg, *args)

    def error(self, msg: str, *args) -> None:
        self.errors += 1
        self.logger.error(msg, *args)

    def start(self, total: int) -> None:
        self.current, self.total = 0, total

    def advance(self, work_id: str) -> None:
        self.current += 1
        self.logger.debug("[%d/%d] %s", self.current, self.total, work_id)

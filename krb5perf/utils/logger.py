"""
Thread-aware logging for benchmark runs.

Attempts run on worker threads, so every record carries the thread name
(``krb5perf-worker-3``, ``krb5perf-dispatcher`` or ``MainThread``). Console
output goes to stderr; stdout is reserved for the report.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from krb5perf.core.interfaces import ILogger


LOG_FORMAT = '%(asctime)s.%(msecs)03d %(levelname)-7s [%(threadName)s] %(message)s'
DATE_FORMAT = '%H:%M:%S'


def resolve_level(level: str, verbose: bool = False) -> int:
    """
    Map a level name to a logging level.

    ``verbose`` lowers anything quieter than INFO to INFO so per-attempt
    lines are emitted. Unknown names fall back to WARNING.
    """
    resolved = getattr(logging, level.upper(), None)
    if not isinstance(resolved, int):
        resolved = logging.WARNING
    if verbose:
        resolved = min(resolved, logging.INFO)
    return resolved


class Logger(ILogger):
    """
    ILogger backed by the ``logging`` module.

    Handlers are replaced on construction, so building a new Logger for the
    same name (one per run, or per test) never duplicates output. Safe to
    share between worker threads.
    """

    def __init__(
        self,
        name: str = "krb5perf",
        level: str = "WARNING",
        log_file: Optional[str] = None,
        console: bool = True,
        verbose: bool = False
    ):
        """
        Args:
            name: Logger name
            level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional file receiving the same records, appended to
            console: Whether to write records to stderr
            verbose: Emit per-attempt INFO lines regardless of level
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(resolve_level(level, verbose))
        self.logger.propagate = False
        self.close()

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    @property
    def level(self) -> int:
        return self.logger.level

    def close(self) -> None:
        """Detach and close every handler, flushing the log file."""
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

    def debug(self, message: str) -> None:
        self.logger.debug(message)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

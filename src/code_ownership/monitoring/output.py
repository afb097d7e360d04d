"""
Output channel
==============

The "Code Ownership" output channel: an append-only log the user can open to
diagnose failed ownership checks.  Lines look like::

    [2024-05-01 13:37:00.042] [warning] Missing expected property `team_yml` in command output

The channel is a ``logging.Handler`` so every module keeps logging through
its own ``logging.getLogger(...)``.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Callable

CHANNEL_NAME = "Code Ownership"
PACKAGE_LOGGER = "code_ownership"
MAX_BUFFERED_LINES = 5000

LEVEL_NAMES: dict[int, str] = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class ChannelFormatter(logging.Formatter):
    """``[local time with milliseconds] [level] message``."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        millis = int(record.msecs)
        level = LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"[{stamp}.{millis:03d}] [{level}] {message}"


class OutputChannelHandler(logging.Handler):
    """Keeps recent lines in memory, optionally mirrors them to a file."""

    def __init__(
        self,
        name: str = CHANNEL_NAME,
        log_file: Path | None = None,
        max_lines: int = MAX_BUFFERED_LINES,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        self.name = name
        self.log_file = log_file
        self.lines: deque[str] = deque(maxlen=max_lines)
        self._listeners: list[Callable[[str], None]] = []
        self.setFormatter(ChannelFormatter())

    def on_line(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Call ``listener`` for every new line; returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            self.lines.append(line)
            if self.log_file is not None:
                with self.log_file.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            for listener in list(self._listeners):
                listener(line)
        except Exception:
            self.handleError(record)

    def text(self) -> str:
        return "\n".join(self.lines)


def setup_logging(level: str = "info", log_file: Path | None = None) -> OutputChannelHandler:
    """Attach a fresh output channel to the package logger and return it."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(package_logger.handlers):
        if isinstance(existing, OutputChannelHandler):
            package_logger.removeHandler(existing)

    handler = OutputChannelHandler(log_file=log_file)
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler


def teardown_logging(handler: OutputChannelHandler) -> None:
    logging.getLogger(PACKAGE_LOGGER).removeHandler(handler)
    handler.close()

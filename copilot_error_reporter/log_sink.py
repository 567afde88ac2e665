# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Append-only sinks for the reporter's own log lines."""

import logging
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path

LOG_TIME_FORMAT = "%a %b %d %H:%M:%S %Y"


def format_line(message: str, when: float | None = None) -> str:
    """Prefix ``message`` with a ``[Sun Jan 05 13:01:02 2025]`` timestamp."""
    stamp = time.strftime(LOG_TIME_FORMAT, time.localtime(when))
    return f"[{stamp}] {message}"


class LogSink(ABC):
    """Destination of ``ErrorReporter.log`` lines."""

    @abstractmethod
    def write(self, message: str) -> None:
        """Append one line.

        Args:
            message: Fully formatted message, without timestamp
        """
        pass


class FileLogSink(LogSink):
    """Append timestamped lines to a text file."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)

    def write(self, message: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(format_line(message) + "\n")


class LoggingLogSink(LogSink):
    """Forward lines to a stdlib logger at INFO level."""

    def __init__(self, name: str | None = None):
        self.logger = logging.getLogger(name or "copilot_error_reporter.log")

    def write(self, message: str) -> None:
        self.logger.info(message)


class SilentLogSink(LogSink):
    """Keep lines in memory, for tests."""

    def __init__(self):
        self.lines: list[str] = []

    def write(self, message: str) -> None:
        self.lines.append(message)

    def has_line(self, text: str) -> bool:
        """Check if any stored line contains ``text``."""
        return any(text in line for line in self.lines)

    def clear(self) -> None:
        self.lines.clear()


def _default(value: str | None, env_var: str, fallback: str | None) -> str | None:
    """Helper to pick an explicit value, then env var, then fallback."""
    return value or os.getenv(env_var) or fallback


def create_log_sink(
    sink_type: str | None = None,
    path: str | None = None,
    name: str | None = None,
) -> LogSink:
    """Factory function to create a log sink.

    Args:
        sink_type: "file", "logging" or "silent". Defaults to
            ERROR_REPORTER_LOG_TYPE env, then "file" when a path is known and
            "logging" otherwise.
        path: Log file for the file sink. Defaults to ERROR_REPORTER_LOG_PATH env.
        name: Logger name for the logging sink.

    Returns:
        LogSink instance

    Raises:
        ValueError: If sink_type is not recognized or the file sink has no path
    """
    path = _default(path, "ERROR_REPORTER_LOG_PATH", None)
    sink_type = _default(sink_type, "ERROR_REPORTER_LOG_TYPE", "file" if path else "logging").lower()

    if sink_type == "file":
        if not path:
            raise ValueError("file log sink requires a path")
        return FileLogSink(path)
    elif sink_type == "logging":
        return LoggingLogSink(name)
    elif sink_type == "silent":
        return SilentLogSink()
    else:
        raise ValueError(
            f"Unknown log sink type: {sink_type}. "
            f"Must be one of: file, logging, silent"
        )

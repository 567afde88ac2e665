# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Severity classes and their display names."""

import math
from enum import IntFlag


class Severity(IntFlag):
    """Bitmask severity of a reported fault.

    Single classes are OR-ed into the buffer's accumulator and AND-ed for
    selection. EXCEPTION and REPORT sit above FATAL and are not part of the
    ordering ladder used by ``worst_severity``.
    """

    OK = 0x00
    DEBUG = 0x01
    DEPRECATED = 0x02
    INFO = 0x04
    WARNING = 0x08
    ERROR = 0x10
    FATAL = 0x20
    EXCEPTION = 0x40
    REPORT = 0x80
    ALL = 0xFF


# error/warning/info/debug
VERBOSE_LEVELS = 4

# classes that can be stored in the buffer
RECORDABLE = frozenset({
    Severity.OK,
    Severity.DEBUG,
    Severity.DEPRECATED,
    Severity.INFO,
    Severity.WARNING,
    Severity.ERROR,
    Severity.FATAL,
    Severity.EXCEPTION,
    Severity.REPORT,
})

# classes accepted back by merge_buffer()
MERGEABLE = frozenset({
    Severity.ERROR,
    Severity.DEPRECATED,
    Severity.DEBUG,
    Severity.INFO,
    Severity.WARNING,
    Severity.EXCEPTION,
    Severity.OK,
})

ERROR_MASK = Severity.FATAL | Severity.ERROR | Severity.EXCEPTION

_DISPLAY_NAMES = {
    Severity.WARNING: "WARNING",
    Severity.DEPRECATED: "DEPRECATED",
    Severity.EXCEPTION: "EXCEPTION",
    Severity.FATAL: "FATAL",
    Severity.INFO: "INFO",
    Severity.ERROR: "ERROR",
    Severity.REPORT: "INTERNAL REPORT",
    Severity.DEBUG: "DEBUG",
    Severity.OK: "OK",
}

_TYPE_NAMES = {
    Severity.FATAL: "fatal",
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "info",
    Severity.DEPRECATED: "deprecated",
    Severity.DEBUG: "debug",
    Severity.OK: "",
}


def is_recordable(value: object) -> bool:
    """Return True if ``value`` is a single severity class the buffer accepts."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value in RECORDABLE


def severity_name(errno: int) -> str:
    """Convert a severity code into its upper-case display name.

    Args:
        errno: Severity code

    Returns:
        Display name, or ``UNKNOWN (<hex>)`` for codes outside the known classes
    """
    try:
        return _DISPLAY_NAMES[Severity(errno)]
    except (KeyError, ValueError):
        return f"UNKNOWN ({errno:x})"


def type_name(errno: int) -> str | None:
    """Lower-case type name of a severity class, None if it has none."""
    try:
        return _TYPE_NAMES.get(Severity(errno))
    except ValueError:
        return None


def is_verbose(errno: int, verbosity: int) -> bool:
    """Check whether a severity passes the verbosity gate.

    With verbosity 1 only ERROR and above are echoed, each increment opens
    the gate one class further down.

    Args:
        errno: Severity code
        verbosity: Current verbosity level (0 disables echoing)

    Returns:
        True if messages of this severity get echoed with a backtrace
    """
    if not verbosity or errno <= 0:
        return False
    return VERBOSE_LEVELS - verbosity < math.log2(errno)


def clamp(severity: int, ceiling: int) -> Severity:
    """Lower ``severity`` to ``ceiling`` if it is above it, never raise it."""
    if severity > ceiling:
        return Severity(ceiling)
    return Severity(severity)

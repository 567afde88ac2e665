# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Records kept by the error reporter."""

from dataclasses import asdict, dataclass, field, replace
from typing import Any

from .severity import Severity


@dataclass(frozen=True)
class StackFrame:
    """One frame of a stack snapshot.

    Attributes:
        function: Function name
        cls: Class name when the frame belongs to a method
        separator: ``->`` for instance methods, ``::`` for class-level calls
        file: Source file of the frame, if known
        line: Line number within ``file``
        args: Argument values passed to the function
    """

    function: str
    cls: str | None = None
    separator: str = ""
    file: str | None = None
    line: int | None = None
    args: tuple[Any, ...] = field(default=(), compare=False)

    @property
    def qualified_name(self) -> str:
        """Attribution string, ``Class::function`` or ``function``."""
        if self.cls:
            return f"{self.cls}::{self.function}"
        return self.function


@dataclass(frozen=True)
class ErrorRecord:
    """A classified occurrence stored in the message ring."""

    message: str
    severity: Severity
    caller: str = "unknown"
    backtrace: str | None = None

    def with_severity(self, severity: Severity) -> "ErrorRecord":
        """Return a copy of this record carrying another severity."""
        return replace(self, severity=severity)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["severity"] = int(self.severity)
        return data


@dataclass(frozen=True)
class LastOccurrence:
    """Sticky copy of the most recently handled raw fault."""

    errfile: str | None
    errline: int | None
    errno: int
    errstr: str
    repeat_count: int = 0

    def same_site(self, errfile: str | None, errline: int | None, errno: int) -> bool:
        return (
            self.errfile == errfile
            and self.errline == errline
            and self.errno == errno
        )


@dataclass(frozen=True)
class FaultEvent:
    """Fault handed to registered message callbacks."""

    errno: int
    errstr: str
    errfile: str | None
    errline: int | None
    caller: str
    context: Any = None
    backtrace: str = ""

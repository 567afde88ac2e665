# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Stack snapshots and caller attribution."""

import inspect
import re
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from types import FrameType, TracebackType
from typing import Any, Protocol

from .models import StackFrame

# Frames of these modules are stripped from the top of live snapshots
INTERNAL_MODULES = ("copilot_error_reporter", "warnings", "_py_warnings")

# Generic dispatch trampolines, never attributed as a caller
PROXY_FUNCTIONS = frozenset({"__getattr__", "__getattribute__", "__call__"})


class FrameFilter(Protocol):
    def filter(self, frame: StackFrame) -> bool: ...


def frame_to_stack_frame(frame: FrameType, lineno: int | None = None, with_args: bool = True) -> StackFrame:
    """Describe a live interpreter frame.

    Args:
        frame: Interpreter frame
        lineno: Line to report, defaults to the frame's current line
        with_args: Capture argument values (skipped for caller lookups)

    Returns:
        StackFrame descriptor
    """
    code = frame.f_code
    arginfo = inspect.getargvalues(frame)
    names = list(arginfo.args)
    local_vars = arginfo.locals

    cls = None
    separator = ""
    if names and names[0] in ("self", "cls") and names[0] in local_vars:
        bound = local_vars[names[0]]
        if names[0] == "cls" and isinstance(bound, type):
            cls, separator = bound.__name__, "::"
        else:
            cls, separator = type(bound).__name__, "->"
        names = names[1:]

    args: tuple[Any, ...] = ()
    if with_args:
        values = [local_vars[name] for name in names if name in local_vars]
        if arginfo.varargs and arginfo.varargs in local_vars:
            values.extend(local_vars[arginfo.varargs])
        if arginfo.keywords and local_vars.get(arginfo.keywords):
            values.append(dict(local_vars[arginfo.keywords]))
        args = tuple(values)

    return StackFrame(
        function=code.co_name,
        cls=cls,
        separator=separator,
        file=code.co_filename,
        line=frame.f_lineno if lineno is None else lineno,
        args=args,
    )


def frames_from_traceback(tb: TracebackType | None) -> list[StackFrame]:
    """Convert a traceback chain into frames, most recent call first."""
    frames = []
    while tb is not None:
        frames.append(frame_to_stack_frame(tb.tb_frame, tb.tb_lineno))
        tb = tb.tb_next
    frames.reverse()
    return frames


class StackInspector(ABC):
    """Source of stack snapshots for the reporter."""

    @abstractmethod
    def snapshot(self, offset: int = 0, with_args: bool = True) -> list[StackFrame]:
        """Capture the current call stack, most recent call first.

        Args:
            offset: Number of leading (most recent) frames to drop
            with_args: Capture argument values

        Returns:
            Ordered list of frames
        """
        pass


class FrameStackInspector(StackInspector):
    """Snapshot the interpreter stack through ``sys._getframe``.

    Frames belonging to the reporter itself (and to the warnings dispatch
    machinery) are dropped from the top, so frame 0 is the code that raised
    the fault.
    """

    def __init__(self, internal_modules: Iterable[str] = INTERNAL_MODULES):
        self.internal_modules = tuple(internal_modules)

    def _is_internal(self, frame: FrameType) -> bool:
        module = frame.f_globals.get("__name__", "")
        return any(
            module == name or module.startswith(name + ".")
            for name in self.internal_modules
        )

    def snapshot(self, offset: int = 0, with_args: bool = True) -> list[StackFrame]:
        frame: FrameType | None = sys._getframe(1)
        while frame is not None and self._is_internal(frame):
            frame = frame.f_back

        frames = []
        while frame is not None:
            frames.append(frame_to_stack_frame(frame, with_args=with_args))
            frame = frame.f_back
        return frames[offset:]


class StaticStackInspector(StackInspector):
    """Serve a fixed list of frames, used to drive the reporter in tests."""

    def __init__(self, frames: Sequence[StackFrame] = ()):
        self.frames = list(frames)

    def snapshot(self, offset: int = 0, with_args: bool = True) -> list[StackFrame]:
        return list(self.frames[offset:])


@dataclass(frozen=True)
class SyntheticCause:
    """Cause object carrying a captured stack for reports without an exception."""

    message: str
    frames: tuple[StackFrame, ...] = field(default=(), repr=False)

    @classmethod
    def capture(cls, message: str, inspector: StackInspector) -> "SyntheticCause":
        return cls(message=message, frames=tuple(inspector.snapshot()))

    def __str__(self) -> str:
        return self.message


def resolve_caller(
    frames: Sequence[StackFrame],
    depth: int = 0,
    exclude: str | None = None,
    backtrace_filters: Iterable[FrameFilter] = (),
) -> str:
    """Find the n-th real caller in a snapshot.

    Dispatch trampolines, frames matching ``exclude`` and frames vetoed by a
    backtrace filter are consumed without counting toward ``depth``.

    Args:
        frames: Snapshot, most recent call first
        depth: Number of real frames to skip (0 is the innermost caller)
        exclude: Optional regular expression of attributions to pass over
        backtrace_filters: Objects whose ``filter(frame)`` returns True to skip

    Returns:
        ``Class::function``, ``function`` or ``unknown`` if the stack is too shallow
    """
    filters = list(backtrace_filters)
    pattern = re.compile(exclude) if exclude else None
    remaining = depth
    for frame in frames:
        if frame.function in PROXY_FUNCTIONS:
            continue
        method = frame.qualified_name
        if pattern is not None and pattern.search(method):
            continue
        if any(f.filter(frame) for f in filters):
            continue
        if remaining == 0:
            return method
        remaining -= 1
    return "unknown"


def format_stack(frames: Sequence[StackFrame], lines: bool = False) -> list[str]:
    """Pretty one-line entries, ``Class::function()`` with optional ``:line``."""
    pretty = []
    for frame in frames:
        entry = frame.qualified_name + "()"
        if lines and frame.line is not None:
            entry += f":{frame.line}"
        pretty.append(entry)
    return pretty


def innermost_location(tb: TracebackType | None) -> tuple[str | None, int | None]:
    """File and line of the frame that raised, ``(None, None)`` without a traceback."""
    if tb is None:
        return None, None
    while tb.tb_next is not None:
        tb = tb.tb_next
    return tb.tb_frame.f_code.co_filename, tb.tb_lineno

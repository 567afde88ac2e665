# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Backtrace rendering with bounded argument summaries.

Backtraces end up in log files and, outside production, in front of end
users. Argument values are therefore summarized rather than dumped: objects
are reduced to their type name, containers are nested at most three levels
deep, and every frame stops after a fixed number of tokens.
"""

import decimal
import io
import itertools
import numbers
import os
import socket
from collections.abc import Mapping, Sequence, Set
from typing import Any

from .models import StackFrame

MAX_NESTING = 3
MAX_TOKENS = 20
MAX_STEPS = 50
MAX_STRING = 512
DEFAULT_MAX_FRAMES = 99

NESTED_PLACEHOLDER = "[...]"

_RESOURCE_TYPES = (io.IOBase, socket.socket)
_PLAIN_MODULES = ("builtins", "collections")


class _StopFrame(Exception):
    """Raised internally once a frame's argument budget is spent."""


class _ArgumentSummary:
    """Walks one frame's arguments and accumulates the summary text."""

    def __init__(self, debug: bool):
        self.debug = debug
        self.parts: list[str] = []
        self.tokens = 0
        self.steps = 0

    def render(self, args: Sequence[Any]) -> str:
        try:
            self._walk(enumerate(args), depth=1)
        except _StopFrame:
            pass
        return "".join(self.parts)

    def _step(self, first: bool) -> None:
        self.steps += 1
        if self.steps > MAX_STEPS:
            self.parts.append("..." if first else ", ...")
            raise _StopFrame()
        if self.tokens >= MAX_TOKENS:
            raise _StopFrame()

    def _walk(self, items, depth: int) -> None:
        first = True
        for key, value in items:
            if callable(value):
                # a closure or other callable ends the summary for the whole frame
                raise _StopFrame()
            self._step(first)
            if not first:
                self.parts.append(", ")
            first = False
            if isinstance(key, bool) or not isinstance(key, int):
                self.parts.append(summarize_key(key, self.debug) + ":")
            self._value(value, depth)

    def _value(self, value: Any, depth: int) -> None:
        children = _children(value)
        if children is None:
            self.tokens += 1
            self.parts.append(summarize_scalar(value, self.debug))
            return
        if depth > MAX_NESTING:
            self.tokens += 1
            self.parts.append(NESTED_PLACEHOLDER)
            return
        self.parts.append("[")
        try:
            self._walk(children, depth + 1)
        finally:
            # brackets stay balanced even when the frame is cut short
            self.parts.append("]")


def _children(value: Any):
    """Return (key, value) pairs for plain containers, None for scalars."""
    if isinstance(value, (str, bytes, bytearray)):
        return None
    if isinstance(value, Mapping) and type(value).__module__ in _PLAIN_MODULES:
        return itertools.islice(value.items(), MAX_STEPS + 1)
    if isinstance(value, (list, tuple, Set)) and type(value).__module__ in _PLAIN_MODULES:
        return enumerate(itertools.islice(value, MAX_STEPS + 1))
    return None


def summarize_scalar(value: Any, debug: bool = False) -> str:
    """Summarize a single non-container argument value.

    Args:
        value: Argument value
        debug: Allow long strings, truncated at 512 characters

    Returns:
        Display token
    """
    if value is None:
        return "null"
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("latin-1")
    if isinstance(value, str):
        if len(value) > 1 and ord(value[0]) < 10:
            return "<binary>"
        if debug and len(value) > MAX_STRING:
            return '"' + value[:MAX_STRING] + '..."'
        return '"' + value + '"'
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (numbers.Real, decimal.Decimal)):
        try:
            return str(int(value))
        except (ValueError, OverflowError):
            return str(value)
    if isinstance(value, _RESOURCE_TYPES):
        return f"resource({type(value).__name__})"
    # objects and containers we do not enumerate
    return type(value).__name__


def summarize_key(key: Any, debug: bool = False) -> str:
    """Summarize a mapping key.

    String keys are shown bare, capped at 512 characters. Any other key is
    summarized like a value, so objects render as their type name.
    """
    if isinstance(key, str):
        if len(key) > MAX_STRING:
            return key[:MAX_STRING] + "..."
        return key
    return summarize_scalar(key, debug)


def summarize_arguments(args: Sequence[Any], debug: bool = False) -> str:
    """Summarize the argument list of one frame."""
    return _ArgumentSummary(debug).render(args)


class BacktraceRenderer:
    """Render stack snapshots as numbered, human-readable text."""

    def __init__(self, install_path: str | None = None, debug: bool = False):
        """Initialize the renderer.

        Args:
            install_path: Root stripped from file paths below it
            debug: Detailed mode, long string arguments are shown truncated
        """
        self.install_path = install_path
        self.debug = debug

    def _display_path(self, path: str) -> str:
        if self.install_path:
            root = os.path.join(os.path.abspath(self.install_path), "")
            if path.startswith(root):
                return path[len(root):]
        return path

    def render_frame(self, index: int, frame: StackFrame) -> str:
        text = f"{index:2d}. "
        if frame.cls:
            text += frame.cls + frame.separator
        text += frame.function
        text += "(" + summarize_arguments(frame.args, self.debug) + ")\n\t"
        if frame.file:
            text += f"[{self._display_path(frame.file)}:{frame.line}]"
        else:
            text += "[n/a]"
        return text + "\n"

    def render(self, frames: Sequence[StackFrame], offset: int = 0, max_frames: int = 0) -> str:
        """Render a snapshot, most recent call first.

        Args:
            frames: Snapshot to render
            offset: Leading frames to skip, numbering restarts at 0 after them
            max_frames: Upper bound on the frame index, values below 1 mean 99

        Returns:
            Rendered backtrace, one block per frame

        Raises:
            TypeError: If offset is not an integer
            ValueError: If offset is negative
        """
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise TypeError(f"non-integer argument passed to offset, `{offset!r}'")
        if offset < 0:
            raise ValueError(f"non-positive integer passed to offset, `{offset}'")
        if max_frames < 1:
            max_frames = DEFAULT_MAX_FRAMES

        end = min(len(frames), max_frames)
        return "".join(
            self.render_frame(i - offset, frames[i]) for i in range(offset, end)
        )

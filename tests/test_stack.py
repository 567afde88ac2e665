# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for stack snapshots and caller resolution."""

from copilot_error_reporter.filters import BacktraceFilter
from copilot_error_reporter.models import StackFrame
from copilot_error_reporter.stack import (
    FrameStackInspector,
    StaticStackInspector,
    SyntheticCause,
    format_stack,
    frames_from_traceback,
    innermost_location,
    resolve_caller,
)

PROXIED = [
    StackFrame("__getattr__", cls="Proxy", separator="->"),
    StackFrame("__call__", cls="Proxy", separator="->"),
    StackFrame("fetch", cls="Storage", separator="->", file="/srv/app/storage.py", line=42),
    StackFrame("main", file="/srv/app/cli.py", line=7),
]


class Probe:
    def capture(self, count, *extra, **options):
        return FrameStackInspector().snapshot()

    @classmethod
    def build(cls):
        return FrameStackInspector().snapshot(with_args=False)


def _explode():
    raise ValueError("bad value")


class SkipStorage(BacktraceFilter):
    def filter(self, frame):
        return frame.cls == "Storage"


class TestResolveCaller:
    """Tests for resolve_caller."""

    def test_proxies_are_skipped(self):
        """Test that dispatch trampolines never count as callers."""
        assert resolve_caller(PROXIED) == "Storage::fetch"

    def test_depth_counts_real_frames(self):
        """Test that depth skips real frames only."""
        assert resolve_caller(PROXIED, depth=1) == "main"

    def test_shallow_stack(self):
        """Test that an exhausted stack yields unknown."""
        assert resolve_caller(PROXIED, depth=2) == "unknown"
        assert resolve_caller([]) == "unknown"

    def test_exclude_pattern(self):
        """Test that frames matching the exclusion regex are passed over."""
        assert resolve_caller(PROXIED, exclude=r"^Storage::") == "main"

    def test_backtrace_filters(self):
        """Test that filters can veto frames."""
        assert resolve_caller(PROXIED, backtrace_filters=[SkipStorage()]) == "main"


class TestFrameStackInspector:
    """Tests for live stack snapshots."""

    def test_innermost_frame_is_caller(self):
        """Test that frame 0 is the function that took the snapshot."""
        frames = Probe().capture(3, "x", verbose=True)

        frame = frames[0]
        assert frame.function == "capture"
        assert frame.cls == "Probe"
        assert frame.separator == "->"
        assert frame.file == __file__
        assert frame.args == (3, "x", {"verbose": True})

    def test_outer_frames_follow(self):
        """Test that the calling test method is next on the stack."""
        frames = Probe().capture(1)

        assert frames[1].function == "test_outer_frames_follow"

    def test_class_method_separator(self):
        """Test that class-level calls use the static separator."""
        frame = Probe.build()[0]

        assert frame.cls == "Probe"
        assert frame.separator == "::"
        assert frame.args == ()

    def test_offset(self):
        """Test that offset drops leading frames."""
        inspector = FrameStackInspector()

        frames = inspector.snapshot(offset=1)

        assert frames[0].function != "test_offset"


class TestTracebacks:
    """Tests for frames taken from exceptions."""

    def test_frames_from_traceback(self):
        """Test that the raising function comes first."""
        try:
            _explode()
        except ValueError as e:
            frames = frames_from_traceback(e.__traceback__)

        assert [f.function for f in frames] == ["_explode", "test_frames_from_traceback"]

    def test_innermost_location(self):
        """Test file and line of the raising frame."""
        try:
            _explode()
        except ValueError as e:
            errfile, errline = innermost_location(e.__traceback__)

        assert errfile == __file__
        assert errline == _explode.__code__.co_firstlineno + 1

    def test_innermost_location_without_traceback(self):
        """Test that a bare exception has no location."""
        assert innermost_location(None) == (None, None)


class TestHelpers:
    """Tests for static snapshots, synthetic causes and pretty stacks."""

    def test_static_inspector(self):
        """Test that static snapshots honour the offset."""
        inspector = StaticStackInspector(PROXIED)

        assert inspector.snapshot(offset=2)[0].function == "fetch"

    def test_synthetic_cause(self):
        """Test that a synthetic cause captures the stack."""
        cause = SyntheticCause.capture("cache miss", StaticStackInspector(PROXIED))

        assert str(cause) == "cache miss"
        assert len(cause.frames) == 4

    def test_format_stack(self):
        """Test pretty one-line entries."""
        assert format_stack(PROXIED[2:]) == ["Storage::fetch()", "main()"]
        assert format_stack(PROXIED[2:], lines=True) == ["Storage::fetch():42", "main():7"]

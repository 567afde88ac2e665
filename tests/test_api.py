# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for the module-level API bound to the default reporter."""

import sys

import pytest

import copilot_error_reporter as er
from copilot_error_reporter import ErrorReporter, Severity


class TestDefaultReporter:
    """Tests for default reporter management."""

    def test_get_reporter_returns_installed_default(self, default_reporter):
        """Test that the installed default is returned."""
        assert er.get_reporter() is default_reporter

    def test_get_reporter_creates_from_environment(self, monkeypatch):
        """Test lazy creation of the default reporter."""
        monkeypatch.setenv("ERROR_REPORTER_NOTIFIER", "silent")
        monkeypatch.setenv("ERROR_REPORTER_LOG_TYPE", "silent")
        er.reset_default_reporter()
        try:
            reporter = er.get_reporter()

            assert isinstance(reporter, ErrorReporter)
            assert er.get_reporter() is reporter
        finally:
            er.reset_default_reporter()

    def test_init_is_idempotent(self, default_reporter):
        """Test that only the first init installs hooks."""
        original = sys.excepthook

        assert er.init()
        assert not er.init()
        assert sys.excepthook is not original

        er.reset_default_reporter()
        assert sys.excepthook is original


class TestMessages:
    """Tests for the message shortcuts."""

    def test_error_returns_false(self, default_reporter):
        """Test that error() records and returns False."""
        assert er.error("disk %s", "full") is False

        assert default_reporter.get_errors() == ["disk full"]

    def test_warn_and_info(self, default_reporter):
        """Test that warn() and info() return True."""
        assert er.warn("retrying")
        assert er.info("cached")

        assert [r.severity for r in default_reporter.get_buffer()] == [Severity.WARNING, Severity.INFO]

    def test_debug_requires_debug_mode(self, default_reporter):
        """Test that debug() is a no-op outside debug mode."""
        assert not er.debug("state")
        assert default_reporter.get_buffer() == []

        default_reporter.environment.is_debug = True
        assert er.debug("state")
        assert default_reporter.get_buffer()[0].severity == Severity.DEBUG

    def test_deprecated_outside_debug(self, default_reporter):
        """Test that deprecated() does nothing outside debug mode."""
        assert er.deprecated("use bar")

        assert default_reporter.get_buffer() == []

    def test_deprecated_prefixes_caller(self, default_reporter):
        """Test the caller prefix of deprecation messages."""
        default_reporter.environment.is_debug = True

        er.deprecated("use bar %s", "instead")

        record = default_reporter.get_buffer(Severity.DEPRECATED)[0]
        assert record.message == "Storage::fetch(): use bar instead"

    def test_deprecated_keeps_existing_prefix(self, default_reporter):
        """Test that an already prefixed message is left alone."""
        default_reporter.environment.is_debug = True

        er.deprecated("Storage::fetch is old")

        assert default_reporter.get_buffer(Severity.DEPRECATED)[0].message == "Storage::fetch is old"

    def test_deprecated_func_reports(self, default_reporter):
        """Test that deprecated functions are reported outside debug mode."""
        assert er.deprecated_func()

        record = default_reporter.get_buffer()[0]
        assert record.severity == Severity.REPORT
        assert record.message == "deprecated func: Storage::fetch"

    def test_deprecated_func_in_debug(self, default_reporter):
        """Test that debug mode records the function and its caller."""
        default_reporter.environment.is_debug = True

        er.deprecated_func("use %s", "fetch_v2")

        record = default_reporter.get_buffer(Severity.DEPRECATED)[0]
        assert record.message == "Storage::fetch(): is deprecated - called from main(): use fetch_v2"

    def test_report(self, default_reporter):
        """Test internal reports."""
        assert er.report("cache miss %d", 7)

        assert default_reporter.get_buffer()[0].message == "cache miss 7"

    def test_fatal(self, default_reporter):
        """Test that fatal() exits with 255."""
        with pytest.raises(SystemExit) as exc_info:
            er.fatal("giving up")

        assert exc_info.value.code == 255


class TestGates:
    """Tests for mute, silence and logging shortcuts."""

    def test_mute_runs_function_without_warnings(self, default_reporter):
        """Test that warnings are muted for the duration of the call."""
        result = er.mute(lambda: er.warn("hidden") and "done")

        assert result == "done"
        assert default_reporter.get_buffer() == []
        assert not default_reporter.warnings_muted

        er.warn("visible")
        assert default_reporter.get_last_msg() == "visible"

    def test_mute_rejects_non_callable(self, default_reporter):
        """Test that mute() records an error for non-callables."""
        assert er.mute(42) is False

        assert default_reporter.get_errors() == ["argument must be a function, given int"]

    def test_mute_warn_and_unmute_warn(self, default_reporter):
        """Test the token-based shortcuts."""
        token = er.mute_warn()

        assert default_reporter.warnings_muted
        assert er.unmute_warn(token)
        assert not er.unmute_warn(token)

    def test_silence(self, default_reporter):
        """Test that silence() forwards the return value."""
        assert er.silence(lambda: 7) == 7

    def test_dlog(self, default_reporter, log_sink, capsys):
        """Test that dlog() writes to the log sink."""
        assert er.dlog("%d retries", 3)

        assert log_sink.lines == ["3 retries"]
        assert capsys.readouterr().err == ""

    def test_dlog_echoes_in_debug(self, default_reporter, capsys):
        """Test that dlog() echoes to stderr in debug mode."""
        default_reporter.environment.is_debug = True

        er.dlog("%d retries", 3)

        assert capsys.readouterr().err == "3 retries\n"


class TestTruncate:
    """Tests for truncate."""

    def test_long_string(self):
        """Test that long strings are cut and marked."""
        text = "a very long string to cut"
        assert len(text) == 25

        assert er.truncate(text, 10) == "a very lon..."

    def test_short_string(self):
        """Test that short strings are unchanged."""
        assert er.truncate("short", 10) == "short"

    def test_exact_length(self):
        """Test that a string of exactly the limit is unchanged."""
        assert er.truncate("x" * 80) == "x" * 80

    def test_non_string_is_fatal(self, default_reporter):
        """Test that truncating anything but a string terminates."""
        with pytest.raises(SystemExit):
            er.truncate(["a", "b"])

        assert default_reporter.get_buffer(Severity.FATAL)[0].message.endswith("cannot truncate list")

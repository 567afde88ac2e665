# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for log sinks."""

import logging
import re
from pathlib import Path

import pytest

from copilot_error_reporter.log_sink import (
    FileLogSink,
    LoggingLogSink,
    SilentLogSink,
    create_log_sink,
    format_line,
)

LINE_PATTERN = re.compile(r"^\[\w{3} \w{3} \d{2} \d{2}:\d{2}:\d{2} \d{4}\] (.*)$")


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv("ERROR_REPORTER_LOG_TYPE", raising=False)
    monkeypatch.delenv("ERROR_REPORTER_LOG_PATH", raising=False)


def test_format_line():
    """Test the timestamp prefix."""
    match = LINE_PATTERN.match(format_line("disk full"))

    assert match is not None
    assert match.group(1) == "disk full"


def test_file_sink_appends_lines(tmp_path: Path) -> None:
    """Test that the file sink creates the file and appends to it."""
    path = tmp_path / "logs" / "start.log"
    sink = FileLogSink(path)

    sink.write("first")
    sink.write("second")

    lines = path.read_text(encoding="utf-8").splitlines()
    assert [LINE_PATTERN.match(line).group(1) for line in lines] == ["first", "second"]


def test_logging_sink(caplog):
    """Test forwarding to a stdlib logger."""
    sink = LoggingLogSink()

    with caplog.at_level(logging.INFO, logger="copilot_error_reporter.log"):
        sink.write("[last message repeated 2 times]")

    assert caplog.records[0].getMessage() == "[last message repeated 2 times]"


def test_silent_sink():
    """Test the in-memory sink."""
    sink = SilentLogSink()
    sink.write("disk full")

    assert sink.has_line("disk")
    sink.clear()
    assert sink.lines == []


class TestCreateLogSink:
    """Tests for create_log_sink."""

    def test_defaults_to_logging(self, clean_env):
        """Test the default sink without a path."""
        assert isinstance(create_log_sink(), LoggingLogSink)

    def test_path_selects_file(self, clean_env, tmp_path):
        """Test that a path implies the file sink."""
        sink = create_log_sink(path=str(tmp_path / "start.log"))

        assert isinstance(sink, FileLogSink)

    def test_from_env(self, clean_env, monkeypatch, tmp_path):
        """Test environment defaults."""
        monkeypatch.setenv("ERROR_REPORTER_LOG_PATH", str(tmp_path / "start.log"))

        sink = create_log_sink()

        assert isinstance(sink, FileLogSink)
        assert sink.path == tmp_path / "start.log"

    def test_silent(self, clean_env):
        """Test creating the silent sink."""
        assert isinstance(create_log_sink("silent"), SilentLogSink)

    def test_file_without_path(self, clean_env):
        """Test that the file sink needs a path."""
        with pytest.raises(ValueError, match="requires a path"):
            create_log_sink("file")

    def test_unknown_type(self, clean_env):
        """Test that unknown types raise ValueError."""
        with pytest.raises(ValueError, match="Unknown log sink type"):
            create_log_sink("syslog")

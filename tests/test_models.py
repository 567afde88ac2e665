# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for reporter records."""

from copilot_error_reporter.models import ErrorRecord, LastOccurrence, StackFrame
from copilot_error_reporter.severity import Severity


def test_record_to_dict():
    """Test converting a record to a plain dictionary."""
    record = ErrorRecord("disk full", Severity.ERROR, caller="Storage::fetch")

    assert record.to_dict() == {
        "message": "disk full",
        "severity": 0x10,
        "caller": "Storage::fetch",
        "backtrace": None,
    }


def test_with_severity_builds_copy():
    """Test that downgraded copies leave the original alone."""
    record = ErrorRecord("disk full", Severity.ERROR)

    lowered = record.with_severity(Severity.WARNING)

    assert lowered.severity == Severity.WARNING
    assert record.severity == Severity.ERROR
    assert lowered.message == record.message


def test_same_site():
    """Test repeat detection ignores the message."""
    last = LastOccurrence("/srv/app/a.py", 3, Severity.ERROR, "disk full")

    assert last.same_site("/srv/app/a.py", 3, Severity.ERROR)
    assert not last.same_site("/srv/app/a.py", 4, Severity.ERROR)
    assert not last.same_site("/srv/app/a.py", 3, Severity.WARNING)


def test_qualified_name():
    """Test attribution strings."""
    assert StackFrame("fetch", cls="Storage", separator="->").qualified_name == "Storage::fetch"
    assert StackFrame("main").qualified_name == "main"


def test_frame_equality_ignores_args():
    """Test that argument values do not take part in comparisons."""
    assert StackFrame("main", args=(1,)) == StackFrame("main", args=(2,))

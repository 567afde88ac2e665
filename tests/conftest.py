# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Shared fixtures: an isolated reporter with a fixed stack and in-memory sinks."""

from io import StringIO

import pytest

from copilot_error_reporter import (
    ErrorReporter,
    HostEnvironment,
    ReporterConfig,
    StackFrame,
    StaticStackInspector,
    reset_default_reporter,
    set_default_reporter,
)
from copilot_error_reporter.log_sink import SilentLogSink
from copilot_error_reporter.silent_notifier import SilentNotifier

STORAGE_FRAME = StackFrame(
    "fetch",
    cls="Storage",
    separator="->",
    file="/srv/app/storage.py",
    line=42,
    args=("disk0", 3),
)
MAIN_FRAME = StackFrame("main", file="/srv/app/cli.py", line=7)


@pytest.fixture
def inspector():
    """Stack whose innermost caller is Storage->fetch()."""
    return StaticStackInspector([STORAGE_FRAME, MAIN_FRAME])


@pytest.fixture
def environment():
    return HostEnvironment(
        is_cli=True,
        is_ajax=False,
        is_debug=False,
        install_path="/srv/app",
        server_name="testhost",
    )


@pytest.fixture
def config(environment):
    return ReporterConfig(verbosity=0, notifier_type="silent", environment=environment)


@pytest.fixture
def notifier():
    return SilentNotifier()


@pytest.fixture
def log_sink():
    return SilentLogSink()


@pytest.fixture
def stream():
    return StringIO()


@pytest.fixture
def reporter(config, inspector, notifier, log_sink, stream):
    return ErrorReporter(
        config=config,
        stack_inspector=inspector,
        notifier=notifier,
        log_sink=log_sink,
        stream=stream,
    )


@pytest.fixture
def default_reporter(reporter):
    """Install ``reporter`` as the process default for the module-level API."""
    set_default_reporter(reporter)
    yield reporter
    reset_default_reporter()

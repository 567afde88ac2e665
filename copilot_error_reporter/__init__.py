# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Copilot-for-Consensus Error Reporter.

An in-process error, warning and info reporting facility: severity-classified
message buffer, repeat collapsing, backtrace rendering, per call-site
suppression and outbound fault reports.
"""

from .api import (
    debug,
    deprecated,
    deprecated_func,
    dlog,
    error,
    fatal,
    get_reporter,
    info,
    init,
    is_debug,
    mute,
    mute_warn,
    report,
    reset_default_reporter,
    set_default_reporter,
    silence,
    truncate,
    unmute_warn,
    warn,
)
from .backtrace import BacktraceRenderer
from .callbacks import MessageCallback
from .config import HostEnvironment, ReporterConfig
from .exceptions import NotificationError, ReporterError
from .filters import BacktraceFilter, ReportFilter, SuppressionRule
from .hooks import RuntimeHooks
from .log_sink import LogSink, create_log_sink
from .models import ErrorRecord, FaultEvent, LastOccurrence, StackFrame
from .notifier import Notification, Notifier, create_notifier
from .reporter import ErrorReporter, MuteToken
from .severity import Severity, severity_name
from .stack import FrameStackInspector, StackInspector, StaticStackInspector, SyntheticCause

__version__ = "0.1.0"

__all__ = [
    "BacktraceFilter",
    "BacktraceRenderer",
    "ErrorRecord",
    "ErrorReporter",
    "FaultEvent",
    "FrameStackInspector",
    "HostEnvironment",
    "LastOccurrence",
    "LogSink",
    "MessageCallback",
    "MuteToken",
    "Notification",
    "NotificationError",
    "Notifier",
    "ReportFilter",
    "ReporterConfig",
    "ReporterError",
    "RuntimeHooks",
    "Severity",
    "StackFrame",
    "StackInspector",
    "StaticStackInspector",
    "SuppressionRule",
    "SyntheticCause",
    "create_log_sink",
    "create_notifier",
    "debug",
    "deprecated",
    "deprecated_func",
    "dlog",
    "error",
    "fatal",
    "get_reporter",
    "info",
    "init",
    "is_debug",
    "mute",
    "mute_warn",
    "report",
    "reset_default_reporter",
    "set_default_reporter",
    "severity_name",
    "silence",
    "truncate",
    "unmute_warn",
    "warn",
]

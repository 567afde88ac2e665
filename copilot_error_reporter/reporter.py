# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Process-wide error reporter.

The reporter classifies faults by severity, collapses repeats, renders
backtraces, keeps a drainable buffer of messages and forwards critical faults
to a notifier. One instance is normally shared by the whole process (see
``copilot_error_reporter.init``), but every piece of state lives on the
instance so tests can build isolated reporters.
"""

import html
import itertools
import logging
import os
import pprint
import sys
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any, TextIO

from .backtrace import BacktraceRenderer
from .callbacks import CallbackRegistry, MessageCallback
from .config import ReporterConfig
from .exceptions import NotificationError
from .filters import BacktraceFilter, ReportFilter, SuppressionChain
from .log_sink import LogSink, create_log_sink
from .models import ErrorRecord, FaultEvent, LastOccurrence, StackFrame
from .notifier import Notification, Notifier, create_notifier
from .ring import MessageRing
from .severity import (
    MERGEABLE,
    Severity,
    clamp,
    is_recordable,
    is_verbose,
    severity_name,
    type_name,
)
from .stack import (
    FrameStackInspector,
    StackInspector,
    SyntheticCause,
    format_stack,
    frames_from_traceback,
    innermost_location,
    resolve_caller,
)

logger = logging.getLogger(__name__)

FATAL_EXIT_CODE = 255

ContextProvider = Callable[[], Mapping[str, Any]]


@dataclass(frozen=True)
class MuteToken:
    """Proof of ownership of the warning mute.

    Attributes:
        owner: Call-site that muted warnings
        serial: Distinguishes successive mutes from the same call-site
    """

    owner: str
    serial: int


class ErrorReporter:
    """Severity-classified, deduplicating error buffer and fault handler."""

    def __init__(
        self,
        config: ReporterConfig | None = None,
        stack_inspector: StackInspector | None = None,
        renderer: BacktraceRenderer | None = None,
        notifier: Notifier | None = None,
        log_sink: LogSink | None = None,
        stream: TextIO | None = None,
        context_provider: ContextProvider | None = None,
    ):
        """Initialize the reporter.

        Args:
            config: Reporter configuration (defaults to ``ReporterConfig.from_env()``)
            stack_inspector: Source of stack snapshots
            renderer: Backtrace renderer (defaults to one rooted at the install path)
            notifier: Outbound report transport (defaults to the configured driver)
            log_sink: Destination of ``log()`` lines (defaults to the configured sink)
            stream: Output for echoed messages (defaults to ``sys.stdout``)
            context_provider: Callable returning named request-context sections
                appended to outbound reports
        """
        self.config = config or ReporterConfig.from_env()
        environment = self.config.environment
        self.stack_inspector = stack_inspector or FrameStackInspector()
        self.renderer = renderer or BacktraceRenderer(
            install_path=environment.install_path, debug=environment.is_debug
        )
        if notifier is None:
            notifier = create_notifier(
                self.config.notifier_type,
                smtp_host=self.config.smtp_host,
                smtp_port=self.config.smtp_port,
                sender=self.config.sender,
                dsn=self.config.sentry_dsn,
                environment=self.config.sentry_environment,
            )
        self.notifier = notifier
        self.log_sink = log_sink or create_log_sink(self.config.log_sink_type, self.config.log_path)
        self.context_provider = context_provider
        self._stream = stream

        self.ring = MessageRing()
        self.lock = self.ring.lock
        self.suppression = SuppressionChain()
        self.callbacks = CallbackRegistry()
        self.report_filters: list[ReportFilter] = []
        self.backtrace_filters: list[BacktraceFilter] = []

        self._last: LastOccurrence | None = None
        self._report_counter = 0
        self._last_fault_message: str | None = None
        self._mute_token: MuteToken | None = None
        self._saved_mask: int | None = None
        self._mute_serial = itertools.count(1)
        self._hooks = None

    # ------------------------------------------------------------------
    # configuration shortcuts

    @property
    def environment(self):
        return self.config.environment

    @property
    def verbosity(self) -> int:
        return self.config.verbosity

    @property
    def report_address(self) -> str | None:
        return self.config.report_address

    @property
    def report_counter(self) -> int:
        """Number of outbound reports sent since the last full reset."""
        return self._report_counter

    @property
    def last_occurrence(self) -> LastOccurrence | None:
        return self._last

    @property
    def warnings_muted(self) -> bool:
        return self._mute_token is not None

    def init(self) -> bool:
        """Install this reporter as the process fault handler.

        Returns:
            True if hooks were installed, False if they already were
        """
        if self._hooks is None:
            from .hooks import RuntimeHooks

            self._hooks = RuntimeHooks(self)
        return self._hooks.install()

    def shutdown(self) -> bool:
        """Restore the fault handlers that were active before ``init()``."""
        if self._hooks is None:
            return False
        return self._hooks.uninstall()

    def reset(self) -> None:
        """Return the reporter to its freshly constructed state.

        Registered callbacks, filters and suppression rules are dropped too.
        """
        with self.lock:
            self.ring.reset()
            self._last = None
            self._report_counter = 0
            self._last_fault_message = None
            self._mute_token = None
            if self._saved_mask is not None:
                self.config.reporting_mask = self._saved_mask
                self._saved_mask = None
            self.suppression.clear()
            self.callbacks = CallbackRegistry()
            self.report_filters = []
            self.backtrace_filters = []

    # ------------------------------------------------------------------
    # output

    def _write(self, text: str) -> None:
        stream = self._stream or sys.stdout
        stream.write(text)
        stream.flush()

    def log(self, message: str, *args: Any) -> None:
        """Append a line to the log sink, ``%``-formatting it with ``args``."""
        if args:
            message = message % args
        self.log_sink.write(message)

    # ------------------------------------------------------------------
    # buffer insertion

    def append_message(
        self,
        message: str,
        severity: int,
        *args: Any,
        caller: str | None = None,
        backtrace: str | None = None,
        echo: bool = True,
    ) -> bool:
        """Insert a message into the buffer.

        Args:
            message: Message, ``%``-formatted with ``args`` when given
            severity: Severity class of the message
            *args: Format arguments
            caller: Attribution, resolved from the stack when omitted
            backtrace: Pre-rendered backtrace to store with the record
            echo: Print the message when the verbosity gate is met

        Returns:
            True if the message was recorded, False if it was swallowed
            (warnings muted, above the emit ceiling or a repeat of the last one)

        Raises:
            SystemExit: If ``severity`` is not a severity class
        """
        if not is_recordable(severity):
            self.trigger_fatal("invalid error class %r", severity)
        severity = Severity(severity)

        if self._mute_token is not None and severity == Severity.WARNING:
            return False
        if severity > self.config.max_emit:
            return False
        if args:
            message = message % args

        with self.lock:
            if caller is None:
                caller = self.get_caller()
            verbose = echo and is_verbose(severity, self.config.verbosity)
            if verbose and backtrace is None:
                backtrace = self.get_debug_bt()

            if not self.ring.append(message, severity, caller, backtrace):
                return False

        if verbose:
            self._write("%-8s: %s\n" % (severity_name(severity), message))
            self._echo_backtrace(backtrace or "")
        return True

    def _echo_backtrace(self, bt: str) -> None:
        if self.environment.is_web:
            # backtraces would corrupt structured responses
            if not self.environment.is_ajax:
                self._write('<pre><code class="backtrace">' + html.escape(bt, quote=True) + "</code></pre>")
        else:
            self._write(bt + "\n")

    def add_error(self, message: str, *args: Any) -> bool:
        if is_verbose(Severity.ERROR, self.config.verbosity):
            message = f"{self.get_caller()}: {message}"
        return self.append_message(message, Severity.ERROR, *args)

    def add_warning(self, message: str, *args: Any) -> bool:
        """Record a warning, a no-op while warnings are muted.

        Returns:
            Always True, warnings never block control flow
        """
        if self._mute_token is not None:
            return True
        if self.config.verbosity > 0:
            message = f"{self.get_caller()}(): {message}"
        self.append_message(message, Severity.WARNING, *args)
        return True

    def add_info(self, message: str, *args: Any) -> bool:
        self.append_message(message, Severity.INFO, *args)
        return True

    def add_debug(self, message: str, *args: Any) -> bool:
        return self.append_message(message, Severity.DEBUG, *args)

    def add_success(self, message: str, *args: Any) -> bool:
        self.append_message(message, Severity.OK, *args)
        return True

    def add_deprecated(self, message: str, *args: Any) -> bool:
        """Record use of a deprecated interface.

        With verbosity off nobody would see the message, so it is also sent
        out as an internal report.
        """
        if args:
            message = message % args
        if not self.config.verbosity:
            self.report("Deprecated: %s", message)
        self.append_message(message, Severity.DEPRECATED)
        return True

    # ------------------------------------------------------------------
    # fault handling

    def handle_error(
        self,
        errno: int,
        errstr: str,
        errfile: str | None = None,
        errline: int | None = None,
        errcontext: Any = None,
    ) -> bool:
        """Handle a runtime fault.

        Args:
            errno: Severity class of the fault
            errstr: Fault message
            errfile: Source file of the fault, if known
            errline: Line of the fault within ``errfile``
            errcontext: Exception or ``SyntheticCause`` carrying the stack,
                or arbitrary context handed to filters and callbacks

        Returns:
            True if the fault was handled (reported, collapsed, suppressed or
            outside the reporting mask), False if it duplicates the last
            unlocated fault
        """
        if not self.config.reporting_mask & errno:
            return True

        with self.lock:
            last = self._last
            if last is not None:
                if errfile is not None and last.same_site(errfile, errline, errno):
                    self._last = replace(last, repeat_count=last.repeat_count + 1)
                    return True
                if last.repeat_count:
                    self.log("[last message repeated %d times]", last.repeat_count)

            occurrence = LastOccurrence(errfile=errfile, errline=errline, errno=errno, errstr=errstr)
            if occurrence == last:
                return False
            self._last = occurrence

        frames = self._fault_frames(errcontext)
        bt = self.renderer.render(frames)
        method = resolve_caller(frames, backtrace_filters=self.backtrace_filters)

        if not self.suppression.should_report(method, errno, errstr, errfile, errline):
            return True
        for report_filter in self.report_filters:
            if report_filter.filter(errno, errstr, errfile, errline, errcontext):
                return True

        event = FaultEvent(
            errno=errno,
            errstr=errstr,
            errfile=errfile,
            errline=errline,
            caller=method,
            context=errcontext,
            backtrace=bt,
        )
        if self.callbacks.dispatch(event):
            return True

        self._emit_fault(errno, errstr, errfile, errline, bt)

        if self.config.report_address and self._report_counter < self.config.report_limit:
            self._report_counter += 1
            self._send_report(errno, errstr, errfile, errline, method, bt)

        record_as = Severity(errno) if is_recordable(errno) else Severity.WARNING
        self.append_message(errstr, record_as, caller=method, backtrace=bt, echo=False)
        self._last_fault_message = errstr
        return True

    def _fault_frames(self, errcontext: Any) -> list[StackFrame]:
        if isinstance(errcontext, SyntheticCause):
            return list(errcontext.frames)
        if isinstance(errcontext, BaseException) and errcontext.__traceback__ is not None:
            return frames_from_traceback(errcontext.__traceback__)
        return self.stack_inspector.snapshot()

    def _emit_fault(
        self,
        errno: int,
        errstr: str,
        errfile: str | None,
        errline: int | None,
        bt: str,
    ) -> None:
        verbose = is_verbose(errno, self.config.verbosity)
        # fatal faults are never squelched
        if errno != Severity.FATAL and not verbose:
            return

        display = f"{severity_name(errno)}: {errstr} \n"
        if errfile:
            display += f"[{errfile}:{errline}]\n"
        if self.environment.is_web:
            display = "<pre>" + display + "</pre><br /><br />"
        if self.environment.is_cli and verbose:
            self.log("%s\n\n%s", display, bt)
        self._write(display)
        if verbose and not self.environment.is_ajax:
            self.print_debug_bt(bt)

    def _send_report(
        self,
        errno: int,
        errstr: str,
        errfile: str | None,
        errline: int | None,
        method: str,
        bt: str,
    ) -> None:
        name = severity_name(errno)
        subject = f"{os.path.basename(errfile or '')}: {method}()"
        if errline is not None:
            subject += f":{errline}"

        mode = "CLI" if self.environment.is_cli else "SAPI"
        body = (
            f"{self.environment.server_name}:\n\n"
            f"{name}: {errstr} [{errfile}:{errline}]\n"
            f"{bt}\nMODE: {mode}\n\n---\n"
        )
        if self.context_provider is not None:
            for section, value in self.context_provider().items():
                body += f"{section}:\n{pprint.pformat(value)}\n\n"

        notification = Notification(
            to=self.config.report_address,
            subject=subject,
            body=body,
            headers={"Precedence": "bulk"},
            severity=name,
        )
        try:
            self.notifier.send(notification)
        except NotificationError as e:
            logger.error(f"Failed to send fault report: {e}")

    def handle_exception(self, exc: BaseException) -> bool:
        """Handle an uncaught exception as an EXCEPTION fault.

        File and line are taken from the innermost traceback frame. If the
        fault is declined the process is terminated.
        """
        errfile, errline = innermost_location(exc.__traceback__)
        message = f"{type(exc).__name__}: {exc}"
        if not self.handle_error(Severity.EXCEPTION, message, errfile, errline, exc):
            self.trigger_fatal("Unhandled exception (%s:%s) `%s'", errfile, errline, message)
        return True

    def report(self, message: str, *args: Any) -> bool:
        """Send a developer-triggered internal report.

        A synthetic cause carrying the current stack stands in for an
        exception so the report always has a backtrace.
        """
        if args:
            message = message % args
        cause = SyntheticCause.capture(message, self.stack_inspector)
        return self.handle_error(Severity.REPORT, message, None, None, cause)

    def trigger_fatal(self, message: str, *args: Any) -> None:
        """Report a fatal fault and terminate.

        Raises:
            SystemExit: Always, with exit code 255
        """
        if args:
            message = message % args
        caller = self.get_caller()
        self.handle_error(Severity.FATAL, f"{caller}(): {message}")
        if self.environment.is_cli:
            sys.stderr.write(message + "\n")
        else:
            logger.error(message)
        try:
            self.notifier.flush()
        except NotificationError as e:
            logger.error(f"Failed to flush pending reports: {e}")
        raise SystemExit(FATAL_EXIT_CODE)

    def get_last_fault_message(self) -> str | None:
        """Return the message of the last handled fault and forget it."""
        message = self._last_fault_message
        self._last_fault_message = None
        return message

    # ------------------------------------------------------------------
    # registration

    def set_report(self, address: str | None) -> None:
        """Enable outbound reports to ``address`` (None disables them)."""
        self.config.report_address = address

    def add_message_callback(self, mask: int, callback: MessageCallback) -> None:
        """Attach a callback, preempting previously registered ones."""
        self.callbacks.add(mask, callback)

    def add_filter(self, fault_filter: ReportFilter | BacktraceFilter) -> None:
        """Register a report filter or a backtrace filter.

        Raises:
            TypeError: If the filter is neither kind
        """
        if isinstance(fault_filter, ReportFilter):
            self.report_filters.append(fault_filter)
        elif isinstance(fault_filter, BacktraceFilter):
            self.backtrace_filters.append(fault_filter)
        else:
            raise TypeError(f"Unsupported filter type: {type(fault_filter).__name__}")

    def suppress_error(
        self,
        call_site: str,
        errno: int = Severity.ALL,
        errstr: str | None = None,
        errfile: str | None = None,
        errline: int | None = None,
    ) -> bool:
        """Withhold a fault signature raised from ``call_site`` from reporting."""
        self.suppression.register(call_site, errno, errstr, errfile, errline)
        return True

    # ------------------------------------------------------------------
    # buffer access

    def _reset_occurrences(self) -> None:
        if self._last is not None and self._last.repeat_count:
            self.log("[last message repeated %d times]", self._last.repeat_count)
        self._last = None
        self._report_counter = 0

    def get_buffer(self, mask: int | None = None) -> list[ErrorRecord]:
        return self.ring.get(mask)

    def flush_buffer(self, mask: int | None = None) -> list[ErrorRecord]:
        """Return and remove the records matching ``mask``.

        Without a mask the whole reporter state is reinitialized, including
        the last occurrence and the outbound report counter.
        """
        with self.lock:
            records = self.ring.flush(mask)
            if not mask:
                self._reset_occurrences()
            return records

    def clear_buffer(self, mask: int | None = None) -> None:
        with self.lock:
            self.ring.clear(mask)
            if not mask:
                self._reset_occurrences()

    def merge_buffer(self, records: Iterable[ErrorRecord]) -> bool:
        """Re-append records, keeping their caller and backtrace.

        Records of a class that cannot be merged back are recorded as
        warnings.
        """
        with self.lock:
            for record in records:
                severity = record.severity
                if severity not in MERGEABLE:
                    logger.warning("%s: invalid error class", severity_name(severity))
                    severity = Severity.WARNING
                self.append_message(
                    record.message,
                    severity,
                    caller=record.caller,
                    backtrace=record.backtrace,
                    echo=False,
                )
        return True

    def set_buffer(self, records: Iterable[ErrorRecord]) -> bool:
        with self.lock:
            records = list(records)
            self.clear_buffer()
            return self.merge_buffer(records)

    def downgrade(self, ceiling: int) -> None:
        """Lower every buffered record to at most ``ceiling``."""
        with self.lock:
            records = [r.with_severity(clamp(r.severity, ceiling)) for r in self.flush_buffer()]
            self.merge_buffer(records)

    @property
    def severity(self) -> Severity:
        """Bitwise OR of every buffered severity."""
        return self.ring.severity

    def worst_severity(self) -> Severity:
        return self.ring.worst_severity()

    def get_severity(self) -> Severity:
        return self.ring.worst_severity()

    def is_error(self) -> bool:
        return self.worst_severity() == Severity.ERROR

    def has_severity(self, mask: int) -> bool:
        return self.ring.has_severity(mask)

    def get_msg_count(self, severity: int) -> int:
        return self.ring.count(severity)

    def get_last_msg(self) -> str | None:
        return self.ring.last_message()

    def get_errors(self) -> list[str]:
        """Messages of every buffered ERROR record."""
        return [r.message for r in self.ring.get(Severity.ERROR)]

    def print_buffer(self) -> None:
        for record in self.ring.get():
            self._write("%-8s: %s\n" % (f"({severity_name(record.severity)})", record.message))

    def sort(self, records: Iterable[ErrorRecord] | None = None) -> list[ErrorRecord]:
        """Order records most severe first, keeping insertion order otherwise."""
        if records is None:
            records = self.ring.get()
        return sorted(records, key=lambda r: int(r.severity), reverse=True)

    def error_type(self, errno: int) -> str | None:
        """Lower-case type name of ``errno``, warning about unknown classes."""
        name = type_name(errno)
        if name is None:
            self.add_warning("invalid error type const %s", errno)
        return name

    # ------------------------------------------------------------------
    # gates

    def mute_warning(self, mute_runtime: bool = False) -> MuteToken | None:
        """Stop recording warnings until the owner unmutes.

        Args:
            mute_runtime: Also drop WARNING and DEPRECATED runtime faults

        Returns:
            Token to hand to ``unmute_warning``, None if already muted
        """
        with self.lock:
            if mute_runtime and self._saved_mask is None:
                self._saved_mask = self.config.reporting_mask
                self.config.reporting_mask = self._saved_mask & ~int(Severity.WARNING | Severity.DEPRECATED)
            if self._mute_token is not None:
                return None
            self._mute_token = MuteToken(owner=self.get_caller(), serial=next(self._mute_serial))
            return self._mute_token

    def unmute_warning(self, token: MuteToken | None = None) -> bool:
        """Re-enable warnings.

        Only the owner may unmute: either the held token is passed, or the
        call comes from the call-site that muted.

        Returns:
            True if warnings were unmuted, False on an ownership mismatch or
            when warnings were not muted
        """
        with self.lock:
            held = self._mute_token
            if held is None:
                return False
            if token is not None:
                if token != held:
                    return False
            elif self.get_caller() != held.owner:
                return False

            self._mute_token = None
            if self._saved_mask is not None:
                self.config.reporting_mask = self._saved_mask
                self._saved_mask = None
            return True

    def silence(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Call ``func`` with every fault but FATAL ignored."""
        saved = self.config.reporting_mask
        self.config.reporting_mask = int(Severity.FATAL)
        try:
            return func(*args, **kwargs)
        finally:
            self.config.reporting_mask = saved

    def limit_emit(self, level: int) -> int:
        """Set the highest severity appended to the buffer.

        Returns:
            The previous ceiling
        """
        previous = self.config.max_emit
        self.config.max_emit = int(level)
        return previous

    def set_verbose(self, level: int | None = None) -> int:
        """Increment verbosity, or set it to ``level``."""
        if level is None:
            self.config.verbosity += 1
        else:
            self.config.verbosity = level
        return self.config.verbosity

    # ------------------------------------------------------------------
    # stack inspection

    def get_caller(self, depth: int = 0, exclude: str | None = None) -> str:
        """Attribution of the code calling into the reporter.

        Args:
            depth: Number of real callers to skip
            exclude: Regular expression of attributions to pass over

        Returns:
            ``Class::function``, ``function`` or ``unknown``
        """
        frames = self.stack_inspector.snapshot(with_args=False)
        return resolve_caller(frames, depth, exclude, self.backtrace_filters)

    def get_stack(self, lines: bool = False) -> list[str]:
        return format_stack(self.stack_inspector.snapshot(with_args=False), lines)

    def print_stack(self) -> None:
        text = "".join(f"{i}: {entry}\n" for i, entry in enumerate(self.get_stack(lines=True)))
        if self.environment.is_web:
            text = "<code><pre>" + text + "</pre></code>"
        self._write(text)

    def get_debug_bt(self, offset: int = 0, max_frames: int = 0) -> str:
        return self.renderer.render(self.stack_inspector.snapshot(), offset, max_frames)

    def print_debug_bt(self, bt: str | None = None) -> None:
        if not bt:
            bt = self.get_debug_bt()
        if self.environment.is_web:
            self._write('<code class="backtrace monospace"><pre>' + bt + "</pre></code>")
        else:
            self._write(bt)

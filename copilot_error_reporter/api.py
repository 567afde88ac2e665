# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Module-level shortcuts bound to the process default reporter."""

import sys
import threading
from collections.abc import Callable
from typing import Any

from .reporter import ErrorReporter, MuteToken

_default_reporter: ErrorReporter | None = None
_lock = threading.Lock()


def get_reporter() -> ErrorReporter:
    """Return the process default reporter, creating it from the environment."""
    global _default_reporter
    with _lock:
        if _default_reporter is None:
            _default_reporter = ErrorReporter()
        return _default_reporter


def set_default_reporter(reporter: ErrorReporter) -> None:
    global _default_reporter
    with _lock:
        _default_reporter = reporter


def reset_default_reporter() -> None:
    """Drop the default reporter, restoring any hooks it installed."""
    global _default_reporter
    with _lock:
        reporter, _default_reporter = _default_reporter, None
    if reporter is not None:
        reporter.shutdown()


def init() -> bool:
    """Install the default reporter as the process fault handler.

    Returns:
        True on the first call, False once the hooks are in place
    """
    return get_reporter().init()


def is_debug() -> bool:
    return get_reporter().environment.is_debug


def fatal(message: str, *args: Any) -> None:
    """Report a fatal fault and exit with status 255."""
    get_reporter().trigger_fatal(message, *args)


def error(message: str, *args: Any) -> bool:
    """Record an error.

    Returns:
        Always False, so callers can ``return error(...)`` from a failing path
    """
    get_reporter().add_error(message, *args)
    return False


def warn(message: str, *args: Any) -> bool:
    return get_reporter().add_warning(message, *args)


def info(message: str, *args: Any) -> bool:
    return get_reporter().add_info(message, *args)


def debug(message: str, *args: Any) -> bool:
    """Record a debug message, only when debug mode is on."""
    if not is_debug():
        return False
    return get_reporter().add_debug(message, *args)


def deprecated(message: str, *args: Any) -> bool:
    """Record use of a deprecated feature, prefixed with the calling function.

    A no-op outside debug mode.
    """
    if not is_debug():
        return True
    reporter = get_reporter()
    caller = reporter.get_caller()
    if not message.startswith(caller):
        message = f"{caller}(): {message}"
    return reporter.add_deprecated(message, *args)


def deprecated_func(message: str = "", *args: Any) -> bool:
    """Flag the calling function itself as deprecated.

    In debug mode the function and its caller are recorded; otherwise an
    internal report names the deprecated function.
    """
    reporter = get_reporter()
    func = reporter.get_caller()
    if args:
        message = message % args
    if not is_debug():
        return reporter.report("deprecated func: %s", func)
    return reporter.add_deprecated(
        "%s(): is deprecated - called from %s(): %s", func, reporter.get_caller(1), message
    )


def report(message: str = "", *args: Any) -> bool:
    """Send an internal report with the current backtrace."""
    return get_reporter().report(message, *args)


def mute_warn(mute_runtime: bool = False) -> MuteToken | None:
    return get_reporter().mute_warning(mute_runtime)


def unmute_warn(token: MuteToken | None = None) -> bool:
    return get_reporter().unmute_warning(token)


def mute(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call ``func`` with warnings muted."""
    if not callable(func):
        return error("argument must be a function, given %s", type(func).__name__)
    reporter = get_reporter()
    token = reporter.mute_warning()
    try:
        return func(*args, **kwargs)
    finally:
        if token is not None:
            reporter.unmute_warning(token)


def silence(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call ``func`` with every fault but FATAL ignored. Use sparingly."""
    return get_reporter().silence(func, *args, **kwargs)


def dlog(message: str, *args: Any) -> bool:
    """Write to the reporter log, echoing to stderr in debug mode."""
    reporter = get_reporter()
    if args:
        message = message % args
    reporter.log(message)
    if is_debug():
        sys.stderr.write(message + "\n")
    return True


def truncate(text: str, length: int = 80) -> str:
    """Shorten ``text`` to ``length`` characters followed by ``...``.

    Raises:
        SystemExit: If ``text`` is not a string
    """
    if not isinstance(text, str):
        get_reporter().trigger_fatal("cannot truncate %s", type(text).__name__)
    if len(text) <= length:
        return text
    return text[:length] + "..."

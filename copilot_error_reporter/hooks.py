# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Installable process fault hooks.

Routes uncaught exceptions (main thread and worker threads) and Python
warnings through an ``ErrorReporter``::

    hooks = RuntimeHooks(reporter)
    hooks.install()
    ...
    hooks.uninstall()  # restore the previous hooks
"""

import logging
import sys
import threading
import warnings
from typing import TYPE_CHECKING

from .severity import Severity
from .stack import innermost_location

if TYPE_CHECKING:
    from .reporter import ErrorReporter

logger = logging.getLogger(__name__)

DEPRECATION_CATEGORIES = (DeprecationWarning, PendingDeprecationWarning, FutureWarning)


def warning_severity(category: type[Warning]) -> Severity:
    """Map a warning category onto a severity class."""
    if issubclass(category, DEPRECATION_CATEGORIES):
        return Severity.DEPRECATED
    return Severity.WARNING


class RuntimeHooks:
    """Installable global fault hook manager."""

    def __init__(self, reporter: "ErrorReporter", chain: bool = False):
        """Initialize hooks.

        Args:
            reporter: Reporter receiving the faults
            chain: Also call the previous exception hooks after reporting
        """
        self.reporter = reporter
        self.chain = chain
        self.installed = False
        self._prev_sys_hook = None
        self._prev_threading_hook = None
        self._prev_showwarning = None

    def install(self) -> bool:
        """Install the hooks.

        Returns:
            True if installed, False if this instance was already installed
        """
        if self.installed:
            return False
        self._prev_sys_hook = sys.excepthook
        sys.excepthook = self._sys_hook
        self._prev_threading_hook = threading.excepthook
        threading.excepthook = self._thread_hook
        self._prev_showwarning = warnings.showwarning
        warnings.showwarning = self._show_warning
        self.installed = True
        logger.debug("Installed fault hooks")
        return True

    def uninstall(self) -> bool:
        """Restore the hooks that were active before ``install()``."""
        if not self.installed:
            return False
        sys.excepthook = self._prev_sys_hook
        threading.excepthook = self._prev_threading_hook
        warnings.showwarning = self._prev_showwarning
        self.installed = False
        logger.debug("Restored previous fault hooks")
        return True

    # Internal hook adapters

    def _report_exception(self, exc_value: BaseException) -> bool:
        errfile, errline = innermost_location(exc_value.__traceback__)
        message = f"{type(exc_value).__name__}: {exc_value}"
        return self.reporter.handle_error(Severity.EXCEPTION, message, errfile, errline, exc_value)

    def _sys_hook(self, exc_type, exc_value, tb):
        if issubclass(exc_type, KeyboardInterrupt):
            self._prev_sys_hook(exc_type, exc_value, tb)
            return
        handled = self._report_exception(exc_value)
        if not handled or self.chain:
            self._prev_sys_hook(exc_type, exc_value, tb)

    def _thread_hook(self, args):
        # threading.ExceptHookArgs: (exc_type, exc_value, exc_traceback, thread)
        if args.exc_value is None or issubclass(args.exc_type, SystemExit):
            self._prev_threading_hook(args)
            return
        handled = self._report_exception(args.exc_value)
        if not handled or self.chain:
            self._prev_threading_hook(args)

    def _show_warning(self, message, category, filename, lineno, file=None, line=None):
        handled = self.reporter.handle_error(warning_severity(category), str(message), filename, lineno)
        if not handled:
            self._prev_showwarning(message, category, filename, lineno, file, line)

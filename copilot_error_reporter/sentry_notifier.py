# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Sentry notifier implementation."""

from .exceptions import NotificationError
from .notifier import Notification, Notifier

# Map our severity names to Sentry level names
_LEVEL_MAP = {
    "DEBUG": "debug",
    "DEPRECATED": "info",
    "INFO": "info",
    "WARNING": "warning",
    "ERROR": "error",
    "EXCEPTION": "error",
    "INTERNAL REPORT": "error",
    "FATAL": "fatal",
}


class SentryNotifier(Notifier):
    """Forward fault reports to Sentry as captured messages.

    Requires the ``sentry`` extra (``pip install copilot-error-reporter[sentry]``).

    Example:
        notifier = SentryNotifier(dsn="https://...@sentry.io/...")
        reporter = ErrorReporter(notifier=notifier)
    """

    def __init__(self, dsn: str | None = None, environment: str | None = None):
        """Initialize Sentry notifier.

        Args:
            dsn: Sentry DSN (Data Source Name) for the project
            environment: Environment name (production, staging, development)
        """
        self.dsn = dsn
        self.environment = environment
        self._initialized = False

        if dsn:
            self._initialize_sentry()

    def _initialize_sentry(self) -> None:
        try:
            import sentry_sdk  # type: ignore[reportMissingImports]
        except ImportError:
            raise ImportError(
                "sentry-sdk is not installed. "
                "Install it with: pip install sentry-sdk"
            )
        sentry_sdk.init(dsn=self.dsn, environment=self.environment)
        self._initialized = True

    def send(self, notification: Notification) -> None:
        if not self._initialized:
            raise NotificationError("Sentry notifier not initialized with a valid DSN", transport="sentry")

        import sentry_sdk  # type: ignore[reportMissingImports]

        level = _LEVEL_MAP.get(notification.severity, "error")
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("recipient", notification.to)
            for key, value in notification.headers.items():
                scope.set_tag(key.lower(), value)
            scope.set_context("report", {"body": notification.body})
            sentry_sdk.capture_message(notification.subject, level=level)

    def flush(self) -> None:
        if self._initialized:
            import sentry_sdk  # type: ignore[reportMissingImports]

            sentry_sdk.flush()

# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Abstract notification transport for outbound fault reports."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Notification:
    """A composed fault report.

    Attributes:
        to: Recipient address
        subject: One-line summary, ``file.py: Class::method():line``
        body: Message, backtrace and request context
        headers: Extra transport headers
        severity: Name of the fault class, used by transports with levels
    """

    to: str
    subject: str
    body: str
    headers: dict[str, str] = field(default_factory=lambda: {"Precedence": "bulk"})
    severity: str = "ERROR"


class Notifier(ABC):
    """Abstract base class for notification transports.

    Implementations raise ``NotificationError`` when delivery fails; the
    reporter logs the failure and carries on.
    """

    @abstractmethod
    def send(self, notification: Notification) -> None:
        """Deliver a fault report.

        Args:
            notification: The composed report

        Raises:
            NotificationError: If the report could not be delivered
        """
        pass

    def flush(self) -> None:
        """Deliver anything still queued, called before a fatal exit."""


def create_notifier(notifier_type: str = "mail", **kwargs: Any) -> Notifier:
    """Create a notifier based on type.

    Args:
        notifier_type: Type of notifier ("mail", "sentry", "silent")
        **kwargs: Notifier-specific arguments (smtp_host, smtp_port, sender,
            dsn, environment)

    Returns:
        Notifier instance

    Raises:
        ValueError: If notifier_type is unknown
    """
    notifier_type = notifier_type.lower()
    if notifier_type == "mail":
        from .mail_notifier import MailNotifier

        return MailNotifier(
            host=kwargs.get("smtp_host", "localhost"),
            port=kwargs.get("smtp_port", 25),
            sender=kwargs.get("sender"),
        )
    elif notifier_type == "sentry":
        from .sentry_notifier import SentryNotifier

        return SentryNotifier(dsn=kwargs.get("dsn"), environment=kwargs.get("environment"))
    elif notifier_type == "silent":
        from .silent_notifier import SilentNotifier

        return SilentNotifier()
    else:
        raise ValueError(f"Unknown notifier type: {notifier_type}")

# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""SMTP notifier implementation."""

import logging
import smtplib
import socket
from email.message import EmailMessage

from .exceptions import NotificationError
from .notifier import Notification, Notifier

logger = logging.getLogger(__name__)


class MailNotifier(Notifier):
    """Send fault reports as plain-text mail through an SMTP relay."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 25,
        sender: str | None = None,
        timeout: float = 10.0,
    ):
        """Initialize mail notifier.

        Args:
            host: SMTP relay host
            port: SMTP relay port
            sender: From address (defaults to error-reporter@<hostname>)
            timeout: Connection timeout in seconds
        """
        self.host = host
        self.port = port
        self.sender = sender or f"error-reporter@{socket.gethostname()}"
        self.timeout = timeout

    def build_message(self, notification: Notification) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = notification.to
        message["Subject"] = notification.subject
        for name, value in notification.headers.items():
            message[name] = value
        message.set_content(notification.body)
        return message

    def send(self, notification: Notification) -> None:
        message = self.build_message(notification)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                f"Failed to send report to {notification.to}: {e}", transport="mail"
            ) from e
        logger.debug("Sent fault report to %s: %s", notification.to, notification.subject)

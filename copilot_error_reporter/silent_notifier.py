# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Silent notifier implementation for testing."""

from .notifier import Notification, Notifier


class SilentNotifier(Notifier):
    """Notifier that stores reports in memory.

    Useful for unit tests that verify when and what the reporter would have
    sent without touching a mail relay.
    """

    def __init__(self):
        self.sent: list[Notification] = []
        self.flushed = 0

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)

    def flush(self) -> None:
        self.flushed += 1

    def get_notifications(self, subject: str | None = None) -> list[Notification]:
        """Get stored reports, optionally filtered by subject substring."""
        if subject:
            return [n for n in self.sent if subject in n.subject]
        return self.sent

    def clear(self) -> None:
        self.sent.clear()
        self.flushed = 0

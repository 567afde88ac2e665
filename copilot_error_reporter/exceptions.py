# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Exceptions raised by the error reporter."""


class ReporterError(Exception):
    """Base class for error reporter failures."""


class NotificationError(ReporterError):
    """Raised by a notifier when a report could not be delivered."""

    def __init__(self, message: str, transport: str | None = None):
        super().__init__(message)
        self.transport = transport

# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Message callbacks registered against severity masks."""

from abc import ABC, abstractmethod

from .models import FaultEvent


class MessageCallback(ABC):
    """Hook invoked for every handled fault matching its mask."""

    @abstractmethod
    def handle(self, event: FaultEvent) -> bool:
        """Inspect a fault before default emission.

        Args:
            event: The fault being handled

        Returns:
            True to preempt all further handling of the fault
        """
        pass


class CallbackRegistry:
    """Ordered list of ``(mask, callback)`` pairs, most recent first."""

    def __init__(self):
        self._entries: list[tuple[int, MessageCallback]] = []
        self.mask = 0

    def add(self, mask: int, callback: MessageCallback) -> None:
        self.mask |= mask
        self._entries.insert(0, (mask, callback))

    def dispatch(self, event: FaultEvent) -> bool:
        """Offer the event to each matching callback.

        Returns:
            True if a callback preempted handling
        """
        if not self.mask & event.errno:
            return False
        for mask, callback in self._entries:
            if not mask & event.errno:
                continue
            if callback.handle(event):
                return True
        return False

    def __len__(self) -> int:
        return len(self._entries)

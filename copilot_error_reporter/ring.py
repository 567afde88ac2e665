# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Ordered, drainable buffer of classified error records."""

import threading
from collections import Counter

from .models import ErrorRecord
from .severity import ERROR_MASK, Severity


class MessageRing:
    """Append-only (with drain) buffer of error records.

    Besides the records it owns the aggregate state derived from them: the
    bitwise OR of every severity appended since the last clear and the
    per-severity counters. The lock is shared with the reporter so compound
    operations such as downgrade run as one critical section.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._records: list[ErrorRecord] = []
        self._counters: Counter[int] = Counter()
        self._severity = Severity.OK
        self._index: int | None = None

    def reset(self) -> None:
        """Reinitialize the buffer to its empty state."""
        with self.lock:
            self._records = []
            self._counters = Counter()
            self._severity = Severity.OK
            self._index = None

    def append(
        self,
        message: str,
        severity: Severity,
        caller: str = "unknown",
        backtrace: str | None = None,
    ) -> bool:
        """Store a record unless it repeats the tail record.

        Returns:
            True if the record was stored, False if it duplicates the last one
        """
        with self.lock:
            if self._index is not None:
                last = self._records[self._index]
                if last.message == message and last.severity == severity:
                    return False

            self._records.append(
                ErrorRecord(message=message, severity=severity, caller=caller, backtrace=backtrace)
            )
            self._counters[int(severity)] += 1
            self._severity |= severity
            self._index = len(self._records) - 1
            return True

    def get(self, mask: int | None = None) -> list[ErrorRecord]:
        """Return records whose severity intersects ``mask`` (all if omitted)."""
        with self.lock:
            if not mask:
                return list(self._records)
            return [r for r in self._records if r.severity & mask]

    def clear(self, mask: int | None = None) -> None:
        """Remove records matching ``mask``, or everything if omitted."""
        with self.lock:
            if not mask:
                self.reset()
                return
            self._records = [r for r in self._records if not r.severity & mask]
            self._severity &= ~Severity(mask) & Severity.ALL
            self._index = len(self._records) - 1 if self._records else None

    def flush(self, mask: int | None = None) -> list[ErrorRecord]:
        """Return and remove records matching ``mask``."""
        with self.lock:
            records = self.get(mask)
            if records or not mask:
                self.clear(mask)
            return records

    @property
    def severity(self) -> Severity:
        """Bitwise OR of every severity appended since the last clear."""
        return self._severity

    def worst_severity(self) -> Severity:
        if self._severity & ERROR_MASK:
            return Severity.ERROR
        if self._severity & Severity.WARNING:
            return Severity.WARNING
        return Severity.OK

    def has_severity(self, mask: int) -> bool:
        return (self._severity & mask) == mask

    def count(self, severity: int) -> int:
        return self._counters.get(int(severity), 0)

    def last_message(self) -> str | None:
        with self.lock:
            if self._index is None:
                return None
            return self._records[self._index].message

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self.get())

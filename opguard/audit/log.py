"""
Bounded Audit Log for OpGuard.

Keeps the most recent entries in memory; the oldest are evicted first.
Writers are serialized so insertion order and the capacity bound hold
under concurrent hosts.
"""

from collections import deque
from threading import Lock
from typing import Optional

from opguard.audit.entry import AuditEntry


DEFAULT_AUDIT_CAPACITY = 1000
DEFAULT_AUDIT_LIMIT = 100


class AuditLog:
    """Fixed-capacity FIFO of audit entries."""

    def __init__(self, capacity: int = DEFAULT_AUDIT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Audit capacity must be positive: {capacity}")
        self.capacity = capacity
        self._entries: deque[AuditEntry] = deque(maxlen=capacity)
        self._lock = Lock()

    def append(self, entry: AuditEntry) -> Optional[AuditEntry]:
        """
        Record an entry.

        Args:
            entry: Entry to append

        Returns:
            The evicted entry if the log was full, otherwise None
        """
        with self._lock:
            evicted = None
            if len(self._entries) == self.capacity:
                evicted = self._entries[0]
            self._entries.append(entry)
        return evicted

    def recent(self, limit: int = DEFAULT_AUDIT_LIMIT) -> list[AuditEntry]:
        """
        Return the most recent entries, oldest first.

        Args:
            limit: Maximum number of entries (zero or less returns none)

        Returns:
            Snapshot list; the log itself is not modified
        """
        if limit <= 0:
            return []
        with self._lock:
            snapshot = list(self._entries)
        return snapshot[-limit:]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

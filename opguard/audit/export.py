"""
Audit File Writer for OpGuard.

The evaluator only keeps an in-memory trail. Hosts that want the trail to
outlive the process append it here as JSON lines.
"""

import json
from collections import Counter
from pathlib import Path
from typing import Iterable

from opguard.audit.entry import AuditEntry


class AuditFileError(ValueError):
    """Raised when a persisted audit file cannot be read back."""


class AuditFileWriter:
    """
    Persistent audit trail.

    Writes JSON lines to a file for later review.
    """

    def __init__(self, path: str = "opguard_audit.jsonl"):
        self.path = Path(path)

    def append(self, entry: AuditEntry) -> None:
        """
        Append one entry to the audit file.

        Args:
            entry: Audit entry to persist
        """
        self.append_many([entry])

    def append_many(self, entries: Iterable[AuditEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            for entry in entries:
                f.write(json.dumps(entry.to_dict(), default=str) + "\n")

    def read_all(self) -> list[AuditEntry]:
        """
        Read all persisted entries.

        Returns:
            List of AuditEntry objects, in file order

        Raises:
            AuditFileError: if a line is not a valid audit entry
        """
        if not self.path.exists():
            return []

        entries = []
        with open(self.path, "r", encoding="utf-8", errors="replace") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                    if not isinstance(data, dict):
                        raise ValueError(f"expected an object, got {type(data).__name__}")
                    entries.append(AuditEntry.from_dict(data))
                except (ValueError, KeyError) as e:
                    raise AuditFileError(
                        f"Corrupt audit entry at {self.path}:{lineno}: {e}"
                    ) from e

        return entries

    def summary(self) -> dict:
        """
        Generate summary statistics.

        Returns:
            Dictionary of summary stats
        """
        entries = self.read_all()

        if not entries:
            return {"total": 0}

        return {
            "total": len(entries),
            "confirmed": sum(1 for e in entries if e.user_confirmed),
            "by_operation": dict(Counter(e.operation for e in entries)),
            "sessions": len({e.session_id for e in entries}),
        }

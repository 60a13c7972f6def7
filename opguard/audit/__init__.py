"""
Audit trail for OpGuard.

Records every inspected operation:
- Bounded in-memory log (most recent entries win)
- Optional JSON-lines persistence for hosts
"""

from opguard.audit.entry import AuditEntry, UNKNOWN_SESSION
from opguard.audit.export import AuditFileError, AuditFileWriter
from opguard.audit.log import AuditLog

__all__ = ["AuditEntry", "AuditFileError", "AuditFileWriter", "AuditLog", "UNKNOWN_SESSION"]

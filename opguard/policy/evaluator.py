"""
Policy Evaluator for OpGuard.

Advises whether a shell command or file edit may run unattended.
Every check is pattern based and best effort; nothing is executed here.
"""

import math
import re
from dataclasses import dataclass, asdict
from threading import Lock
from typing import Any, Optional

from rich.console import Console

from opguard.audit.entry import AuditEntry, UNKNOWN_SESSION
from opguard.audit.log import AuditLog
from opguard.policy.edit_stats import line_count, summarize_edit
from opguard.policy.rules import DEFAULT_POLICY, PolicyConfig

console = Console(stderr=True)

# First token after a file verb. Single-token heuristic: multi-argument
# commands, pipelines and unquoted paths with spaces are not followed.
FILE_TARGET_PATTERN = re.compile(r"""(?:rm|mv|cp|cat|edit)\s+(["']?[^"'\s]+["']?)""")

DATA_LOSS_SUGGESTION = "This command could cause data loss. Manual review required."
CRITICAL_FILE_SUGGESTION = "This file is critical to system operation. Manual review required."
SENSITIVE_EDIT_SUGGESTION = "This file is critical. Show diff and request confirmation."
LARGE_DELETION_SUGGESTION = "Major content deletion detected. Manual review required."


def _without_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class DestructiveCheck:
    """Result of matching a command against the destructive patterns."""

    is_destructive: bool
    reason: Optional[str] = None
    command: Optional[str] = None

    def to_dict(self) -> dict:
        return _without_none(asdict(self))


@dataclass(frozen=True)
class SensitiveCheck:
    """Result of matching a path against the sensitive fragments."""

    is_sensitive: bool
    file: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return _without_none(asdict(self))


@dataclass(frozen=True)
class Decision:
    """Allow/block verdict for a proposed operation."""

    allowed: bool
    requires_confirmation: bool = False
    reason: Optional[str] = None
    suggestion: Optional[str] = None
    command: Optional[str] = None
    file: Optional[str] = None

    @classmethod
    def allow(cls, command: Optional[str] = None, file: Optional[str] = None) -> "Decision":
        return cls(allowed=True, command=command, file=file)

    @classmethod
    def block(
        cls,
        reason: str,
        suggestion: str,
        command: Optional[str] = None,
        file: Optional[str] = None,
    ) -> "Decision":
        return cls(
            allowed=False,
            requires_confirmation=True,
            reason=reason,
            suggestion=suggestion,
            command=command,
            file=file,
        )

    def to_dict(self) -> dict:
        return _without_none(asdict(self))


class PolicyEvaluator:
    """
    Command and file-edit safety gate.

    One long-lived instance per host. Validation methods are pure and may be
    called from any thread; audit writes are serialized.

    Args:
        config: Policy configuration (uses default if not provided)
        session_id: Session stamped on audit entries when the caller
            does not pass one to log_operation
        verbose: Whether to print blocked decisions and audit evictions
    """

    def __init__(
        self,
        config: Optional[PolicyConfig] = None,
        session_id: Optional[str] = None,
        verbose: bool = False,
    ):
        if config is None:
            config = DEFAULT_POLICY

        self.config = config
        self.session_id = session_id
        self.verbose = verbose

        self.destructive_patterns = tuple(
            re.compile(pattern, re.IGNORECASE) for pattern in config.destructive_patterns
        )
        self.sensitive_files = list(config.sensitive_files)

        self._audit = AuditLog(capacity=config.audit_capacity)
        self._lock = Lock()

    # ------------------------------------------------------------------
    # Primitive checks
    # ------------------------------------------------------------------

    def is_destructive(self, command: str) -> DestructiveCheck:
        """
        Check a command against the destructive patterns.

        Args:
            command: Shell command text

        Returns:
            DestructiveCheck for the first matching pattern
        """
        cmd = command.lower()

        for pattern in self.destructive_patterns:
            if pattern.search(cmd):
                return DestructiveCheck(
                    is_destructive=True,
                    reason=f"Matches pattern: {pattern.pattern}",
                    command=command,
                )

        return DestructiveCheck(is_destructive=False)

    def is_sensitive_file(self, file_path: str) -> SensitiveCheck:
        """
        Check whether a path contains any sensitive fragment.

        Containment is a plain substring test, so "/srv/app/.env.prod"
        and "vendor/node_modules/x.js" both match.

        Args:
            file_path: Path to check

        Returns:
            SensitiveCheck for the first matching fragment
        """
        path = file_path.lower()

        for sensitive in tuple(self.sensitive_files):
            if sensitive.lower() in path:
                return SensitiveCheck(
                    is_sensitive=True,
                    file=file_path,
                    reason="This is a sensitive system file",
                )

        return SensitiveCheck(is_sensitive=False)

    def add_sensitive_file(self, fragment: str) -> None:
        """Register an extra sensitive path fragment."""
        with self._lock:
            if fragment not in self.sensitive_files:
                self.sensitive_files.append(fragment)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_command(self, command: str) -> Decision:
        """
        Validate a shell command before execution.

        Args:
            command: Shell command text

        Returns:
            Decision; blocked commands require confirmation
        """
        destructive_check = self.is_destructive(command)
        if destructive_check.is_destructive:
            return self._report(Decision.block(
                reason=f"Destructive command detected: {destructive_check.reason}",
                suggestion=DATA_LOSS_SUGGESTION,
                command=command,
            ))

        file_match = FILE_TARGET_PATTERN.search(command)
        if file_match:
            file_path = re.sub(r"[\"']", "", file_match.group(1))
            sensitive_check = self.is_sensitive_file(file_path)
            if sensitive_check.is_sensitive:
                return self._report(Decision.block(
                    reason=f"Operation on sensitive file: {sensitive_check.file}",
                    suggestion=CRITICAL_FILE_SUGGESTION,
                    command=command,
                ))

        return Decision.allow(command=command)

    def validate_file_edit(
        self,
        file_path: str,
        old_content: Optional[str],
        new_content: Optional[str],
    ) -> Decision:
        """
        Validate a file edit before it is written.

        The large-deletion check compares line counts only; a rewrite that
        keeps the same number of lines scores zero.

        Args:
            file_path: Path of the file being edited
            old_content: Current content, if known
            new_content: Proposed content, if known

        Returns:
            Decision; blocked edits require confirmation
        """
        sensitive_check = self.is_sensitive_file(file_path)
        if sensitive_check.is_sensitive:
            return self._report(Decision.block(
                reason=f"Editing sensitive file: {file_path}",
                suggestion=SENSITIVE_EDIT_SUGGESTION,
                file=file_path,
            ))

        if old_content and new_content:
            old_lines = line_count(old_content)
            new_lines = line_count(new_content)

            if old_lines > 0:
                deletion_ratio = (old_lines - new_lines) / old_lines

                if deletion_ratio > self.config.large_deletion_ratio:
                    percent = int(math.floor(deletion_ratio * 100 + 0.5))
                    return self._report(Decision.block(
                        reason=f"Large deletion detected: {percent}% of file removed",
                        suggestion=LARGE_DELETION_SUGGESTION,
                        file=file_path,
                    ))

        return Decision.allow(file=file_path)

    def summarize_edit(
        self,
        file_path: str,
        old_content: Optional[str],
        new_content: Optional[str],
    ) -> dict:
        """Diff statistics for attaching to an audit entry."""
        return summarize_edit(file_path, old_content, new_content)

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    def log_operation(
        self,
        operation: str,
        details: Any,
        user_confirmed: bool = False,
        session_id: Optional[str] = None,
    ) -> AuditEntry:
        """
        Record an operation in the audit trail.

        Args:
            operation: Label for what was attempted
            details: Free-form payload (command text, path, diff summary)
            user_confirmed: Whether a human approved it
            session_id: Owning session; falls back to the evaluator's

        Returns:
            The created AuditEntry
        """
        entry = AuditEntry(
            operation=operation,
            details=details,
            user_confirmed=user_confirmed,
            session_id=session_id or self.session_id or UNKNOWN_SESSION,
        )

        evicted = self._audit.append(entry)
        if evicted is not None and self.verbose:
            console.print(f"[dim]Audit log full, evicted entry from {evicted.timestamp}[/dim]")

        return entry

    def get_audit_log(self, limit: Optional[int] = None) -> list[AuditEntry]:
        """
        Return the most recent audit entries, oldest first.

        Args:
            limit: Maximum number of entries (default from config)

        Returns:
            List of AuditEntry objects
        """
        if limit is None:
            limit = self.config.default_audit_limit
        return self._audit.recent(limit)

    def clear_audit_log(self) -> None:
        self._audit.clear()

    def _report(self, decision: Decision) -> Decision:
        if self.verbose and not decision.allowed:
            console.print(f"[yellow]⚠ {decision.reason}[/yellow]")
        return decision

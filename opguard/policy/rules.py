"""
Policy Rules Configuration for OpGuard.

These rules hold back operations that:
- Delete or overwrite data in bulk
- Rewrite version-control history
- Touch secrets, agent identity files, or dependency trees
"""

from dataclasses import dataclass, field

from opguard.audit.log import DEFAULT_AUDIT_CAPACITY, DEFAULT_AUDIT_LIMIT


# Shell command patterns that require confirmation (matched case-insensitively)
DESTRUCTIVE_PATTERNS = (
    r"\brm\s+-rf",
    r"\brm\s+.*\*",
    r"\bmkfs\.",
    r"\bdd\s+if=",
    r"\bgit\s+push\s+.*--force",
    r"\bgit\s+reset\s+--hard",
    r"\bmv\s+.*/\s+",
    r"\brmdir\s+",
    r">\s*/etc/",
    r">\s*~/",
)

# Path fragments that mark a file as sensitive (substring match)
SENSITIVE_FILES = (
    ".env",
    ".env.local",
    "SOUL.md",
    "MEMORY.md",
    "USER.md",
    ".git/",
    "node_modules/",
    "package-lock.json",
)

# Policy file category -> PolicyConfig field
RULE_CATEGORIES = {
    "destructive_command": "destructive_patterns",
    "sensitive_path": "sensitive_files",
}


@dataclass
class PolicyConfig:
    """
    Configurable policy settings.

    Hosts may extend the defaults or load them from a policy file.
    """

    # Command restrictions
    destructive_patterns: tuple[str, ...] = DESTRUCTIVE_PATTERNS

    # Path restrictions
    sensitive_files: list[str] = field(default_factory=lambda: list(SENSITIVE_FILES))

    # Edit heuristics
    large_deletion_ratio: float = 0.5

    # Audit trail
    audit_capacity: int = DEFAULT_AUDIT_CAPACITY
    default_audit_limit: int = DEFAULT_AUDIT_LIMIT


# Default policy instance
DEFAULT_POLICY = PolicyConfig()

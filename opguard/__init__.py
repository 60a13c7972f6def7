"""
OpGuard

Safety gate for agent-proposed shell commands and file edits.
"""

__version__ = "0.1.0"

from opguard.audit import AuditEntry
from opguard.policy import Decision, PolicyConfig, PolicyEvaluator

__all__ = ["AuditEntry", "Decision", "PolicyConfig", "PolicyEvaluator", "__version__"]

"""
Policy Engine for OpGuard.

Advises on operations proposed by an agent:
- Destructive shell commands
- Operations on sensitive files
- Edits that delete most of a file

The policy engine is deterministic and non-AI.
"""

from opguard.policy.evaluator import (
    Decision,
    DestructiveCheck,
    PolicyEvaluator,
    SensitiveCheck,
)
from opguard.policy.loader import (
    PolicyDocument,
    PolicyParseError,
    check_policy_file,
    load_policy,
    parse_policy,
)
from opguard.policy.rules import (
    DESTRUCTIVE_PATTERNS,
    SENSITIVE_FILES,
    PolicyConfig,
)

__all__ = [
    "Decision",
    "DestructiveCheck",
    "PolicyEvaluator",
    "SensitiveCheck",
    "PolicyDocument",
    "PolicyParseError",
    "check_policy_file",
    "load_policy",
    "parse_policy",
    "DESTRUCTIVE_PATTERNS",
    "SENSITIVE_FILES",
    "PolicyConfig",
]

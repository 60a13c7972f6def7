"""
Policy File Loader for OpGuard.

Reads host-specific rule tables from YAML:

    inherit_defaults: true
    destructive_command:
      - '\\bshred\\s+'
    sensitive_path:
      - 'secrets/'
    audit_capacity: 1000

Listed rules are appended to the built-in tables unless
``inherit_defaults`` is false, in which case they replace them.
"""

import re
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    ValidationError,
    conint,
    constr,
    field_validator,
)

from opguard.policy.rules import PolicyConfig


RuleEntry = constr(min_length=1, strict=True)


class PolicyParseError(ValueError):
    """Raised when a policy file cannot be parsed or fails validation."""


class PolicyDocument(BaseModel):
    """Schema of an OpGuard policy file."""

    model_config = ConfigDict(extra="forbid")

    inherit_defaults: StrictBool = True
    destructive_command: Optional[list[RuleEntry]] = None
    sensitive_path: Optional[list[RuleEntry]] = None
    audit_capacity: Optional[conint(strict=True, gt=0)] = None

    @field_validator("destructive_command")
    @classmethod
    def _patterns_compile(cls, patterns: Optional[list[str]]) -> Optional[list[str]]:
        for pattern in patterns or []:
            try:
                re.compile(pattern, re.IGNORECASE)
            except re.error as exc:
                raise ValueError(f"Invalid regex {pattern!r}: {exc}") from exc
        return patterns

    def to_config(self) -> PolicyConfig:
        """Merge the document's rules into a fresh PolicyConfig."""
        config = PolicyConfig()

        if self.destructive_command is not None:
            base = list(config.destructive_patterns) if self.inherit_defaults else []
            config.destructive_patterns = tuple(_merge(base, self.destructive_command))

        if self.sensitive_path is not None:
            base = list(config.sensitive_files) if self.inherit_defaults else []
            config.sensitive_files = _merge(base, self.sensitive_path)

        if self.audit_capacity is not None:
            config.audit_capacity = self.audit_capacity

        return config


def _merge(base: list[str], extra: list[str]) -> list[str]:
    for entry in extra:
        if entry not in base:
            base.append(entry)
    return base


def load_policy(path: Union[str, Path]) -> PolicyConfig:
    """
    Load a policy file and build the PolicyConfig it describes.

    Raises:
        PolicyParseError: if the file is missing, unreadable, or invalid.
    """
    p = Path(path).expanduser()
    if not p.is_file():
        raise PolicyParseError(f"Policy file not found: {p}")
    try:
        content = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PolicyParseError(f"Cannot read policy file {p}: {exc}") from exc
    return parse_policy(content, source=str(p))


def parse_policy(yaml_text: str, source: str = "<string>") -> PolicyConfig:
    """
    Parse and validate a YAML policy string.

    Args:
        yaml_text: Raw YAML content.
        source:    Human-readable source label for error messages.

    Returns:
        A :class:`PolicyConfig` with the file's rules merged in.

    Raises:
        PolicyParseError: on YAML syntax errors or schema violations.
    """
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as exc:
        raise PolicyParseError(f"YAML syntax error in {source}: {exc}") from exc

    # An empty document means "defaults only"
    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise PolicyParseError(
            f"Policy {source} must be a YAML mapping (got {type(data).__name__})"
        )

    try:
        document = PolicyDocument.model_validate(data)
    except ValidationError as exc:
        lines = [f"Policy validation failed in {source}:"]
        for err in exc.errors():
            loc = " → ".join(str(x) for x in err["loc"]) if err["loc"] else "(root)"
            lines.append(f"  {loc}: {err['msg']}")
        raise PolicyParseError("\n".join(lines)) from exc

    return document.to_config()


def check_policy_file(path: Union[str, Path]) -> tuple[Optional[PolicyConfig], list[str]]:
    """
    Check a policy file for the ``opguard check-policy`` command.

    Returns:
        (config, []) when the file is valid, otherwise (None, error lines).
    """
    try:
        return load_policy(path), []
    except PolicyParseError as exc:
        return None, str(exc).splitlines()

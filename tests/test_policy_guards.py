"""
Tests for OpGuard Policy Evaluator.

These tests verify that the policy engine correctly:
- Flags destructive shell commands
- Detects operations on sensitive files
- Holds back edits that delete most of a file
- Leaves ordinary operations alone
"""

import pytest

from opguard.policy.evaluator import PolicyEvaluator
from opguard.policy.rules import PolicyConfig


@pytest.fixture
def evaluator():
    return PolicyEvaluator()


class TestDestructiveCommands:
    """Commands matching a destructive pattern need confirmation."""

    @pytest.mark.parametrize("command", [
        "rm -rf /tmp/x",
        "git push origin --force",
        "dd if=/dev/zero of=/dev/sda",
        "rm *.log",
        "mkfs.ext4 /dev/sdb1",
        "git push --force-with-lease origin main",
        "git reset --hard HEAD~1",
        "mv build/ dist",
        "rmdir old_cache",
        "echo 127.0.0.1 evil > /etc/hosts",
        "echo alias ls=rm >~/.bashrc",
    ])
    def test_blocks_destructive(self, evaluator, command):
        decision = evaluator.validate_command(command)
        assert decision.allowed is False
        assert decision.requires_confirmation is True
        assert decision.command == command
        assert decision.reason.startswith("Destructive command detected: Matches pattern:")
        assert "data loss" in decision.suggestion

    def test_matching_is_case_insensitive(self, evaluator):
        """Upper-case variants are still destructive."""
        check = evaluator.is_destructive("RM -RF /var/www")
        assert check.is_destructive
        assert check.command == "RM -RF /var/www"

    def test_reason_names_first_matching_pattern(self, evaluator):
        """'rm -rf *' matches both rm patterns; the first one wins."""
        check = evaluator.is_destructive("rm -rf *")
        assert check.reason == r"Matches pattern: \brm\s+-rf"

    def test_empty_command_is_benign(self, evaluator):
        assert not evaluator.is_destructive("").is_destructive
        assert evaluator.validate_command("").allowed

    def test_plain_listing_allowed(self, evaluator):
        decision = evaluator.validate_command("ls -la")
        assert decision.allowed is True
        assert decision.requires_confirmation is False
        assert decision.reason is None


class TestSensitiveFiles:
    """Sensitive paths match by substring, not by exact name."""

    @pytest.mark.parametrize("path", [
        "/home/u/node_modules/pkg/index.js",
        "/srv/app/.git/config",
        "config/.env.production",
        "CONFIG/.ENV",
        "docs/soul.md",
        "agent/MEMORY.md",
        "web/package-lock.json",
    ])
    def test_substring_containment(self, evaluator, path):
        check = evaluator.is_sensitive_file(path)
        assert check.is_sensitive
        assert check.file == path
        assert check.reason == "This is a sensitive system file"

    def test_ordinary_path_not_sensitive(self, evaluator):
        check = evaluator.is_sensitive_file("src/app.py")
        assert not check.is_sensitive
        assert check.file is None

    def test_command_on_sensitive_file(self, evaluator):
        decision = evaluator.validate_command("cat .env")
        assert decision.allowed is False
        assert decision.requires_confirmation is True
        assert decision.reason == "Operation on sensitive file: .env"
        assert "critical to system operation" in decision.suggestion

    def test_quotes_stripped_from_path(self, evaluator):
        decision = evaluator.validate_command('cat "config/.env.local"')
        assert decision.reason == "Operation on sensitive file: config/.env.local"

    def test_copy_lockfile_flagged(self, evaluator):
        decision = evaluator.validate_command("cp package-lock.json backup.json")
        assert not decision.allowed

    def test_command_on_ordinary_file_allowed(self, evaluator):
        assert evaluator.validate_command("cat README.md").allowed

    def test_only_first_argument_inspected(self, evaluator):
        """The path heuristic looks at a single token after the verb."""
        assert evaluator.validate_command("cp notes.txt .env").allowed

    def test_host_can_register_fragments(self, evaluator):
        assert evaluator.validate_command("cat secrets/db.yaml").allowed

        evaluator.add_sensitive_file("secrets/")
        evaluator.add_sensitive_file("secrets/")

        assert evaluator.sensitive_files.count("secrets/") == 1
        assert not evaluator.validate_command("cat secrets/db.yaml").allowed

    def test_registration_does_not_leak_between_instances(self):
        first = PolicyEvaluator()
        first.add_sensitive_file("private/")
        assert not PolicyEvaluator().is_sensitive_file("private/key").is_sensitive


class TestFileEdits:
    """File edit validation."""

    def test_large_deletion_blocked(self, evaluator):
        decision = evaluator.validate_file_edit(
            "notes.md", "line1\nline2\nline3\nline4", "line1"
        )
        assert decision.allowed is False
        assert decision.requires_confirmation is True
        assert decision.reason == "Large deletion detected: 75% of file removed"
        assert "Major content deletion" in decision.suggestion
        assert decision.file == "notes.md"

    def test_percentage_rounds_half_up(self, evaluator):
        old = "\n".join(f"line{i}" for i in range(8))
        new = "\n".join(f"line{i}" for i in range(3))
        decision = evaluator.validate_file_edit("notes.md", old, new)
        assert decision.reason == "Large deletion detected: 63% of file removed"

    def test_half_deleted_allowed(self, evaluator):
        """Exactly 50% is not more than the threshold."""
        decision = evaluator.validate_file_edit("notes.md", "a\nb\nc\nd", "a\nb")
        assert decision.allowed

    def test_empty_old_content_allowed(self, evaluator):
        decision = evaluator.validate_file_edit("notes.md", "", "anything")
        assert decision.allowed is True

    def test_missing_content_allowed(self, evaluator):
        assert evaluator.validate_file_edit("notes.md", None, None).allowed
        assert evaluator.validate_file_edit("notes.md", "a\nb\nc", None).allowed

    def test_growth_allowed(self, evaluator):
        assert evaluator.validate_file_edit("notes.md", "a", "a\nb\nc").allowed

    def test_full_rewrite_with_same_line_count_allowed(self, evaluator):
        """Only the line-count delta is measured."""
        assert evaluator.validate_file_edit("notes.md", "a\nb\nc", "x\ny\nz").allowed

    def test_sensitive_file_blocked_before_ratio(self, evaluator):
        decision = evaluator.validate_file_edit(".env", "A=1", "A=1\nB=2")
        assert decision.allowed is False
        assert decision.reason == "Editing sensitive file: .env"
        assert "Show diff" in decision.suggestion

    def test_custom_threshold(self):
        strict = PolicyEvaluator(config=PolicyConfig(large_deletion_ratio=0.2))
        decision = strict.validate_file_edit("notes.md", "a\nb\nc\nd", "a\nb\nc")
        assert not decision.allowed
        assert decision.reason == "Large deletion detected: 25% of file removed"


class TestVerboseOutput:
    """Blocked decisions are reported when verbose."""

    def test_verbose_reports_block(self, capsys):
        PolicyEvaluator(verbose=True).validate_command("rm -rf /")
        assert "Destructive command detected" in capsys.readouterr().err

    def test_quiet_by_default(self, evaluator, capsys):
        evaluator.validate_command("rm -rf /")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""


class TestDecisionSerialization:
    """Decisions render to plain dictionaries."""

    def test_allowed_decision_dict(self, evaluator):
        assert evaluator.validate_command("ls").to_dict() == {
            "allowed": True,
            "requires_confirmation": False,
            "command": "ls",
        }

    def test_blocked_decision_dict(self, evaluator):
        data = evaluator.validate_file_edit(".git/config", None, None).to_dict()
        assert data["allowed"] is False
        assert data["requires_confirmation"] is True
        assert data["file"] == ".git/config"
        assert "command" not in data


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
OpGuard CLI Entry Point.

Usage:
    opguard command "rm -rf build/"
    opguard edit notes.md --new notes.md.proposed
    opguard --audit-file audit.jsonl audit --limit 20
    opguard check-policy opguard.yaml
    opguard --help
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from opguard import __version__
from opguard.audit import AuditFileError, AuditFileWriter
from opguard.policy import (
    Decision,
    PolicyEvaluator,
    PolicyParseError,
    check_policy_file,
    load_policy,
)

console = Console()

EXIT_ALLOWED = 0
EXIT_ERROR = 1
EXIT_NEEDS_CONFIRMATION = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opguard",
        description="OpGuard - safety gate for agent shell commands and file edits",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit status:
  0  operation allowed (or confirmed with --confirmed)
  1  usage or policy file error
  2  operation requires human confirmation

Environment:
  SESSION_ID          session stamped on audit entries
  OPGUARD_POLICY      default for --policy
  OPGUARD_AUDIT_FILE  default for --audit-file
""",
    )

    parser.add_argument(
        "--policy",
        default=os.getenv("OPGUARD_POLICY"),
        help="YAML policy file extending the built-in rules",
    )
    parser.add_argument(
        "--audit-file",
        default=os.getenv("OPGUARD_AUDIT_FILE"),
        help="Append audit entries to this JSON-lines file",
    )
    parser.add_argument(
        "--session-id",
        default=os.getenv("SESSION_ID"),
        help="Session identifier for audit entries (default: $SESSION_ID)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the decision as JSON",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only set the exit status",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"OpGuard {__version__}",
    )

    subparsers = parser.add_subparsers(dest="action", required=True)

    cmd_parser = subparsers.add_parser("command", help="Check a shell command")
    cmd_parser.add_argument("text", help="Command text, quoted as one argument")
    cmd_parser.add_argument(
        "--confirmed",
        action="store_true",
        help="A human approved the operation; record it and exit 0",
    )

    edit_parser = subparsers.add_parser("edit", help="Check a file edit")
    edit_parser.add_argument("path", help="Path of the file being edited")
    edit_parser.add_argument(
        "--old",
        help="File holding the current content (default: PATH itself, if it exists)",
    )
    edit_parser.add_argument(
        "--new",
        help="File holding the proposed content ('-' reads stdin)",
    )
    edit_parser.add_argument(
        "--confirmed",
        action="store_true",
        help="A human approved the operation; record it and exit 0",
    )

    audit_parser = subparsers.add_parser("audit", help="Show the persisted audit trail")
    audit_parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Number of most recent entries to show (default: 100)",
    )

    check_parser = subparsers.add_parser(
        "check-policy", help="Validate a policy file and show the resulting rule tables"
    )
    check_parser.add_argument("path", help="YAML policy file to check")

    return parser


def _read_content(source: Optional[str]) -> Optional[str]:
    if source is None:
        return None
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def print_decision(decision: Decision, subject: str) -> None:
    """Print a decision panel."""
    if decision.allowed:
        console.print(Panel.fit(
            f"[bold green]✓ Allowed[/bold green]\n\n{subject}",
            title="OpGuard",
            border_style="green",
        ))
        return

    console.print(Panel.fit(
        f"[bold yellow]⚠ Confirmation required[/bold yellow]\n\n"
        f"{subject}\n\n"
        f"[bold]Reason:[/bold] {escape(decision.reason)}\n"
        f"[bold]Suggestion:[/bold] {escape(decision.suggestion)}",
        title="OpGuard",
        border_style="yellow",
    ))


def print_audit(writer: AuditFileWriter, limit: int) -> None:
    """Print the most recent persisted entries and a summary."""
    entries = writer.read_all()[-limit:] if limit > 0 else []

    table = Table(title=f"Audit trail: {writer.path}")
    table.add_column("Timestamp", style="dim")
    table.add_column("Session")
    table.add_column("Operation", style="bold")
    table.add_column("Confirmed")
    table.add_column("Details")

    for entry in entries:
        table.add_row(
            entry.timestamp,
            entry.session_id,
            escape(entry.operation),
            "yes" if entry.user_confirmed else "no",
            escape(json.dumps(entry.details, default=str)[:80]),
        )

    console.print(table)

    summary = writer.summary()
    console.print(
        f"[bold]Total:[/bold] {summary['total']}  "
        f"[bold]Confirmed:[/bold] {summary.get('confirmed', 0)}"
    )


def print_policy_check(path: str) -> int:
    """Validate a policy file and print its rule tables."""
    config, errors = check_policy_file(path)
    if errors:
        for line in errors:
            console.print(f"[red]{escape(line)}[/red]")
        return EXIT_ERROR

    console.print(Panel.fit(
        f"[bold green]✓ Policy valid[/bold green]\n\n"
        f"[bold]File:[/bold] {escape(path)}\n"
        f"[bold]Destructive patterns:[/bold] {len(config.destructive_patterns)}\n"
        f"[bold]Sensitive paths:[/bold] {len(config.sensitive_files)}\n"
        f"[bold]Audit capacity:[/bold] {config.audit_capacity}",
        title="OpGuard",
        border_style="green",
    ))
    return EXIT_ALLOWED


def run_check(args: argparse.Namespace, evaluator: PolicyEvaluator) -> int:
    """Evaluate one command or edit, log it, and map the decision to an exit status."""
    if args.action == "command":
        decision = evaluator.validate_command(args.text)
        operation = "command"
        subject = f"[bold]Command:[/bold] {escape(args.text)}"
        details = {"command": args.text, "decision": decision.to_dict()}
    else:
        old_source = args.old
        if old_source is None and Path(args.path).is_file():
            old_source = args.path
        old_content = _read_content(old_source)
        new_content = _read_content(args.new)

        decision = evaluator.validate_file_edit(args.path, old_content, new_content)
        stats = evaluator.summarize_edit(args.path, old_content, new_content)
        operation = "file_edit"
        subject = (
            f"[bold]File:[/bold] {escape(args.path)}\n"
            f"[bold]Changes:[/bold] +{stats['additions']} -{stats['deletions']}"
        )
        details = {"file": args.path, "stats": stats, "decision": decision.to_dict()}

    confirmed = bool(args.confirmed) and not decision.allowed
    entry = evaluator.log_operation(operation, details, user_confirmed=confirmed)

    if args.audit_file:
        AuditFileWriter(args.audit_file).append(entry)

    if args.json:
        console.print(
            json.dumps(decision.to_dict(), indent=2),
            soft_wrap=True,
            markup=False,
            emoji=False,
            highlight=False,
        )
    elif not args.quiet:
        print_decision(decision, subject)

    if decision.allowed or confirmed:
        return EXIT_ALLOWED
    return EXIT_NEEDS_CONFIRMATION


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.action == "audit":
        if not args.audit_file:
            console.print("[red]Error: --audit-file (or OPGUARD_AUDIT_FILE) is required[/red]")
            return EXIT_ERROR
        try:
            print_audit(AuditFileWriter(args.audit_file), args.limit)
        except AuditFileError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            return EXIT_ERROR
        return EXIT_ALLOWED

    if args.action == "check-policy":
        return print_policy_check(args.path)

    config = None
    if args.policy:
        try:
            config = load_policy(args.policy)
        except PolicyParseError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            return EXIT_ERROR

    evaluator = PolicyEvaluator(config=config, session_id=args.session_id)

    try:
        return run_check(args, evaluator)
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Error reading content: {escape(str(e))}[/red]")
        return EXIT_ERROR
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()

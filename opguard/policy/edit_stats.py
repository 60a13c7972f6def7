"""
Edit Statistics for OpGuard.

Summarizes a proposed file edit as a unified diff for audit reporting.
These numbers never feed the allow/block decision.
"""

import difflib
from typing import Optional

from unidiff import PatchSet, UnidiffParseError


def line_count(content: str) -> int:
    """Number of newline-separated lines ("" counts as one)."""
    return len(content.split("\n"))


def render_diff(
    file_path: str,
    old_content: Optional[str],
    new_content: Optional[str],
) -> str:
    """
    Render a unified diff between two versions of a file.

    Args:
        file_path: Path shown in the diff headers
        old_content: Current content (None treated as empty)
        new_content: Proposed content (None treated as empty)

    Returns:
        Unified diff text, empty if the contents are identical
    """
    old_lines = (old_content or "").splitlines()
    new_lines = (new_content or "").splitlines()
    diff = difflib.unified_diff(
        old_lines,
        new_lines,
        fromfile=f"a/{file_path}",
        tofile=f"b/{file_path}",
        lineterm="",
    )
    text = "\n".join(diff)
    return text + "\n" if text else ""


def summarize_edit(
    file_path: str,
    old_content: Optional[str],
    new_content: Optional[str],
) -> dict:
    """
    Extract statistics from a proposed edit for reporting.

    Args:
        file_path: Path of the edited file
        old_content: Current content
        new_content: Proposed content

    Returns:
        Dictionary with edit statistics
    """
    stats = {
        "file": file_path,
        "additions": 0,
        "deletions": 0,
        "hunks": 0,
        "old_lines": line_count(old_content) if old_content else 0,
        "new_lines": line_count(new_content) if new_content else 0,
    }

    diff_text = render_diff(file_path, old_content, new_content)
    if not diff_text:
        return stats

    try:
        patch = PatchSet(diff_text)
    except UnidiffParseError as e:
        stats["error"] = f"Invalid diff format: {e}"
        return stats

    for patched_file in patch:
        stats["additions"] += patched_file.added
        stats["deletions"] += patched_file.removed
        stats["hunks"] += len(patched_file)

    return stats

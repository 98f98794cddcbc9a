"""Mirror report formatting functions.

- ``format_mirror_report`` -- human-readable post-run summary.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import MirrorReport


def format_mirror_report(report: MirrorReport) -> str:
    """Format a completed mirror report as human-readable text.

    Sections are only included when they have something to say.

    Args:
        report: The completed mirror report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Mirror report for '{report.root}'"
    if report.reclean:
        header += " (RECLEAN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(
        f"Wrote {report.writes} records from {report.issue_pages} issue "
        f"pages and {report.comment_pages} comment pages"
    )
    lines.append("")

    lines.append("Issues:")
    lines.append(f"  {report.issues_written} written")
    lines.append(f"  {report.issues_skipped} already current")
    lines.append("")

    if report.comment_refreshes:
        lines.append(
            f"Comments (refreshed for {report.comment_refreshes} issues):"
        )
        lines.append(f"  {report.comments_written} written")
        lines.append(f"  {report.comments_skipped} already current")
        lines.append("")

    if report.reclean:
        lines.append("Re-normalized in place:")
        lines.append(f"  {report.recleaned_issues} issues")
        lines.append(f"  {report.recleaned_comments} comments")
        lines.append("")

    return "\n".join(lines).rstrip()


def report_to_json(report: MirrorReport) -> dict:
    """Convert a ``MirrorReport`` into a JSON-serialisable dict.

    Args:
        report: The completed mirror report.

    Returns:
        Dict with run metadata, a ``summary`` of counters and the total
        number of ``writes``.
    """
    return {
        "root": report.root,
        "reclean": report.reclean,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "writes": report.writes,
        "summary": {
            "issue_pages": report.issue_pages,
            "issues_written": report.issues_written,
            "issues_skipped": report.issues_skipped,
            "comment_refreshes": report.comment_refreshes,
            "comment_pages": report.comment_pages,
            "comments_written": report.comments_written,
            "comments_skipped": report.comments_skipped,
            "recleaned_issues": report.recleaned_issues,
            "recleaned_comments": report.recleaned_comments,
        },
    }

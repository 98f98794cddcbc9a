"""Data contracts shared by the mirror engine and its collaborators.

- ``Page``: one page of records returned by an ``IssueSource``.
- ``IssueSource``: what the engine needs from the remote side.
- ``MirrorReport``: aggregate counters for a full mirror run.

Records themselves stay plain dicts: they are opaque, schema-less JSON
that is stored verbatim after normalization.
"""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel


class Page(BaseModel):
    """One page of records from the remote.

    Attributes:
        items: The records on this page, in the remote's order.
        next_page: Number of the following page, or ``None`` on the last.
    """

    items: list[dict] = []
    next_page: int | None = None

    model_config = {"frozen": True}

    @property
    def has_more(self) -> bool:
        return self.next_page is not None


class IssueSource(Protocol):
    """Remote side of the mirror."""

    def list_issues(self, page: int, per_page: int) -> Page:
        """Return one page of issues, most recently updated first."""
        ...

    def list_comments(self, number: int, page: int, per_page: int) -> Page:
        """Return one page of the comments on issue *number*."""
        ...


class MirrorReport(BaseModel):
    """Aggregate report for a full mirror run.

    Attributes:
        root: Mirror root directory.
        reclean: Whether the re-normalize pass ran.
        issue_pages: Issue pages fetched from the remote.
        issues_written: Issues whose content was (re)written.
        issues_skipped: Issues already at the remote's version.
        comment_refreshes: Issues whose comments were re-fetched because
            the stored count differed from the remote count.
        comment_pages: Comment pages fetched from the remote.
        comments_written: Comments whose content was (re)written.
        comments_skipped: Comments already at the remote's version.
        recleaned_issues: Issues rewritten by the re-normalize pass.
        recleaned_comments: Comments rewritten by the re-normalize pass.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    root: str
    reclean: bool = False
    issue_pages: int = 0
    issues_written: int = 0
    issues_skipped: int = 0
    comment_refreshes: int = 0
    comment_pages: int = 0
    comments_written: int = 0
    comments_skipped: int = 0
    recleaned_issues: int = 0
    recleaned_comments: int = 0
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def writes(self) -> int:
        """Total records written, including re-normalize rewrites."""
        return (
            self.issues_written
            + self.comments_written
            + self.recleaned_issues
            + self.recleaned_comments
        )

    def summary(self) -> str:
        """Format a human-readable summary of the run.

        Returns:
            Multi-line summary string with counts per record kind.
        """
        lines = [
            f"Mirror report for '{self.root}'"
            + (" (reclean)" if self.reclean else ""),
            f"  Issue pages:      {self.issue_pages}",
            f"  Issues written:   {self.issues_written}",
            f"  Issues skipped:   {self.issues_skipped}",
            f"  Comment refresh:  {self.comment_refreshes}",
            f"  Comment pages:    {self.comment_pages}",
            f"  Comments written: {self.comments_written}",
            f"  Comments skipped: {self.comments_skipped}",
        ]
        if self.reclean:
            lines.append(f"  Recleaned issues:   {self.recleaned_issues}")
            lines.append(f"  Recleaned comments: {self.recleaned_comments}")
        return "\n".join(lines)

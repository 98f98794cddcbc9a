"""Mirror engine that drives a full incremental mirror run.

A run has two passes:

1. **Issues pass** -- fetch issues most-recently-updated first, one page
   (100 issues) at a time.  Each issue is normalized and written if its
   stored version differs from ``updated_at``.  Paging stops once a page
   produces no write: everything updated earlier than that page is assumed
   to be mirrored already.  This keeps a routine run to a page or two while
   a first run (empty mirror) still walks every page.  ``idle_pages``
   widens the window for feeds whose order is not strictly monotonic; it
   is a best-effort bound, not a guarantee.

2. **Store pass** -- walk the issues already on disk in ascending order.
   With ``reclean`` set, each stored issue and its comments are
   re-normalized and rewritten in place without touching their versions.
   Then the issue's ``comments`` count is compared with the number of
   comment files on disk; only a mismatch triggers paging through that
   issue's comments.  Comments are not ordered by recency, so that paging
   follows the remote's next-page cursor to the end.

Nothing here catches errors.  Any failure from the source or the store
aborts the run; since every record write is atomic and idempotent, the fix
is simply to run again.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone

from issue_mirror.errors import MirrorError
from issue_mirror.mirror.models import IssueSource, MirrorReport
from issue_mirror.mirror.normalize import normalize_comment, normalize_issue
from issue_mirror.mirror.store import IssueStore
from issue_mirror.mirror.versions import RecordWriter, parse_version

logger = logging.getLogger(__name__)

PER_PAGE = 100


class MirrorEngine:
    """Mirror one repository's issues into an ``IssueStore``.

    Args:
        source: Remote issue source (normally a ``GitHubClient``).
        store: Local record store.
        writer: Writer that stamps and skips by version.
        reclean: Re-normalize every stored record before reconciling
            comment counts.
        per_page: Page size for both issue and comment listing.
        idle_pages: Consecutive write-free issue pages that end the
            issues pass.
    """

    def __init__(
        self,
        source: IssueSource,
        store: IssueStore,
        writer: RecordWriter,
        *,
        reclean: bool = False,
        per_page: int = PER_PAGE,
        idle_pages: int = 1,
    ) -> None:
        if idle_pages < 1:
            raise ValueError(f"idle_pages must be at least 1, got {idle_pages}")
        self.source = source
        self.store = store
        self.writer = writer
        self.reclean = reclean
        self.per_page = per_page
        self.idle_pages = idle_pages

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(self) -> MirrorReport:
        """Execute a full mirror run.

        Returns:
            A ``MirrorReport`` with the counters of this run.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        counts: Counter[str] = Counter()

        self.sync_issues(counts)
        self.sync_stored(counts)

        report = MirrorReport(
            root=str(self.store.root),
            reclean=self.reclean,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
            **counts,
        )
        logger.debug("%s", report.summary())
        return report

    # ------------------------------------------------------------------
    # Issues pass
    # ------------------------------------------------------------------

    def sync_issues(self, counts: Counter[str]) -> None:
        """Page through recently updated issues until a page is all current."""
        page = 1
        idle = 0
        while True:
            result = self.source.list_issues(page, self.per_page)
            counts["issue_pages"] += 1

            wrote = 0
            for issue in result.items:
                if self._store_issue(issue):
                    wrote += 1
            counts["issues_written"] += wrote
            counts["issues_skipped"] += len(result.items) - wrote
            logger.info(
                "page %d, num issues %d, wrote %d",
                page,
                len(result.items),
                wrote,
            )

            idle = 0 if wrote else idle + 1
            if idle >= self.idle_pages or not result.has_more:
                return
            page = result.next_page

    def _store_issue(self, issue: dict) -> bool:
        number = _require(issue, "number", "issue")
        version = parse_version(_require(issue, "updated_at", "issue"))
        normalized, _ = normalize_issue(issue)
        return self.writer.write_if_newer(
            self.store.issue_path(number), version, normalized
        )

    # ------------------------------------------------------------------
    # Store pass
    # ------------------------------------------------------------------

    def sync_stored(self, counts: Counter[str]) -> None:
        """Re-normalize (optionally) and reconcile comments of stored issues."""
        for issue in self.store.iter_issues():
            number = _require(issue, "number", "stored issue")
            if self.reclean:
                self._reclean(number, issue, counts)

            declared = issue.get("comments")
            if declared is None:
                continue
            on_disk = self.store.num_comments(number)
            if on_disk == declared:
                continue

            logger.info(
                "issue %d: %d comments on disk, %d upstream",
                number,
                on_disk,
                declared,
            )
            self.refresh_comments(number, counts)

    def _reclean(
        self, number: int, issue: dict, counts: Counter[str]
    ) -> None:
        normalized, changed = normalize_issue(issue)
        if changed:
            self.writer.write_if_newer(
                self.store.issue_path(number), None, normalized
            )
            counts["recleaned_issues"] += 1

        for comment in self.store.iter_comments(number):
            normalized, changed = normalize_comment(comment)
            if not changed:
                continue
            comment_id = _require(comment, "id", "stored comment")
            self.writer.write_if_newer(
                self.store.comment_path(number, comment_id),
                None,
                normalized,
            )
            counts["recleaned_comments"] += 1

    def refresh_comments(self, number: int, counts: Counter[str]) -> None:
        """Fetch every comment page of issue *number* and store changes."""
        counts["comment_refreshes"] += 1
        page = 1
        while True:
            result = self.source.list_comments(number, page, self.per_page)
            counts["comment_pages"] += 1

            for comment in result.items:
                comment_id = _require(comment, "id", "comment")
                version = parse_version(
                    _require(comment, "updated_at", "comment")
                )
                normalized, _ = normalize_comment(comment)
                if self.writer.write_if_newer(
                    self.store.comment_path(number, comment_id),
                    version,
                    normalized,
                ):
                    counts["comments_written"] += 1
                else:
                    counts["comments_skipped"] += 1

            if not result.has_more:
                return
            logger.info("issue %d: next comments page %d", number, result.next_page)
            page = result.next_page


def _require(record: dict, field: str, kind: str):
    value = record.get(field)
    if value is None:
        raise MirrorError(f"{kind} record has no '{field}': {record!r:.200}")
    return value

"""Incremental issue mirror engine.

Public API for mirroring a GitHub repository's issues and comments into a
sharded directory of JSON files.

Architecture
------------
No database and no manifest: a record's version (its ``updated_at``) is
attached to the stored file itself, so staleness is one stat away, and the
set of stored records is whatever the shard directories contain.

Modules:

- ``engine``     -- ``MirrorEngine``: issues pass, comment reconciliation,
  optional re-normalize pass.
- ``store``      -- ``IssueStore``: sharded paths, loading, enumeration.
- ``normalize``  -- declarative field-stripping rules per entity kind.
- ``versions``   -- ``RecordWriter.write_if_newer`` and version backends.
- ``models``     -- ``Page``, ``IssueSource``, ``MirrorReport``.
- ``reporter``   -- human-readable and JSON report formatting.

Usage example
-------------
::

    from issue_mirror.core.client import GitHubClient
    from issue_mirror.mirror import (
        IssueStore, MirrorEngine, MtimeVersionStore, RecordWriter,
        format_mirror_report,
    )

    store = IssueStore("/srv/go-issue-mirror")
    writer = RecordWriter(MtimeVersionStore(), scratch_dir=store.scratch_dir)
    engine = MirrorEngine(GitHubClient(config), store, writer)

    report = engine.run()
    print(format_mirror_report(report))
"""

from .engine import MirrorEngine
from .models import IssueSource, MirrorReport, Page
from .normalize import normalize_comment, normalize_issue
from .reporter import format_mirror_report, report_to_json
from .store import IssueStore
from .versions import (
    MtimeVersionStore,
    RecordWriter,
    SidecarVersionStore,
    create_version_store,
)

__all__ = [
    "IssueSource",
    "IssueStore",
    "MirrorEngine",
    "MirrorReport",
    "MtimeVersionStore",
    "Page",
    "RecordWriter",
    "SidecarVersionStore",
    "create_version_store",
    "format_mirror_report",
    "normalize_comment",
    "normalize_issue",
    "report_to_json",
]

"""On-disk record store for mirrored issues and comments.

Layout under the mirror root::

    issues/
      042/
        42.json
        42.comments/
          comment-1001.json
          comment-1002.json
        1042.json

Issues are sharded by ``number % 1000`` (zero-padded to three digits) to
bound directory fan-out.  Locating a record never requires reading file
contents; listing is derived purely from walking the shard directories and
parsing file names, so there is no manifest to keep in sync.

Traversal is lazy: ``iter_issues()`` and ``iter_comments()`` compute the
sorted identity list up front (a directory walk) and then load one record
at a time.  Any error raised while loading propagates to the caller.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path

from issue_mirror.errors import RecordNotFound, StoreStructureError

logger = logging.getLogger(__name__)

ISSUES_DIR = "issues"
SCRATCH_DIR = ".tmp"
SHARD_WIDTH = 3
SHARD_COUNT = 1000

_COMMENT_FILE = re.compile(r"^comment-(\d+)\.json$")
_COMMENTS_DIR_SUFFIX = ".comments"


def shard_name(number: int) -> str:
    """Return the shard directory name for an issue number (``"042"``)."""
    return f"{number % SHARD_COUNT:0{SHARD_WIDTH}d}"


class IssueStore:
    """Map issue and comment identities to files under a mirror root.

    Args:
        root: Mirror root directory.  It need not exist yet.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    @property
    def issues_dir(self) -> Path:
        return self.root / ISSUES_DIR

    @property
    def scratch_dir(self) -> Path:
        """Directory for in-flight writes, kept outside ``issues/``."""
        return self.root / SCRATCH_DIR

    # ------------------------------------------------------------------
    # Paths (pure, no I/O)
    # ------------------------------------------------------------------

    def issue_path(self, number: int) -> Path:
        """Path of the JSON file holding issue *number*."""
        return self.issues_dir / shard_name(number) / f"{number}.json"

    def comments_dir(self, number: int) -> Path:
        """Path of the directory holding the comments of issue *number*."""
        return (
            self.issues_dir
            / shard_name(number)
            / f"{number}{_COMMENTS_DIR_SUFFIX}"
        )

    def comment_path(self, number: int, comment_id: int) -> Path:
        """Path of the JSON file holding one comment of issue *number*."""
        return self.comments_dir(number) / f"comment-{comment_id}.json"

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_issue(self, number: int) -> dict:
        """Return the stored issue *number*.

        Raises:
            RecordNotFound: If the issue was never mirrored.
        """
        return _read_record(self.issue_path(number))

    def load_comment(self, number: int, comment_id: int) -> dict:
        """Return one stored comment of issue *number*.

        Raises:
            RecordNotFound: If the comment file does not exist.
        """
        return _read_record(self.comment_path(number, comment_id))

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def issue_numbers(self) -> list[int]:
        """Return every stored issue number in ascending order.

        Walks ``issues/`` exactly one shard level deep.  Comments
        directories inside a shard are expected and not descended into;
        any other directory below the shard level is an error.

        Raises:
            StoreStructureError: On unexpected nesting or on a ``.json``
                file whose name is not a number.
        """
        issues_dir = self.issues_dir
        if not issues_dir.is_dir():
            return []

        numbers: list[int] = []
        for shard in os.scandir(issues_dir):
            if not shard.is_dir():
                # Stray files next to the shards are ignored, same as
                # non-JSON files inside a shard.
                continue
            if len(shard.name) != SHARD_WIDTH or not shard.name.isdigit():
                raise StoreStructureError(
                    f"unexpected directory: {shard.path}"
                )
            for entry in os.scandir(shard.path):
                if entry.is_dir():
                    if not entry.name.endswith(_COMMENTS_DIR_SUFFIX):
                        raise StoreStructureError(
                            f"unexpected directory: {entry.path}"
                        )
                    continue
                if not entry.name.endswith(".json"):
                    continue
                stem = entry.name.removesuffix(".json")
                if not stem.isdigit():
                    raise StoreStructureError(
                        f"unexpected non-numeric json file {entry.path}"
                    )
                numbers.append(int(stem))
        numbers.sort()
        return numbers

    def comment_ids(self, number: int) -> list[int]:
        """Return the stored comment ids of issue *number*, ascending.

        A missing comments directory means zero comments, not an error.

        Raises:
            StoreStructureError: On any subdirectory, or on any file not
                named ``comment-<id>.json``.
        """
        comments_dir = self.comments_dir(number)
        try:
            entries = list(os.scandir(comments_dir))
        except FileNotFoundError:
            return []

        ids: list[int] = []
        for entry in entries:
            if entry.is_dir():
                raise StoreStructureError(
                    f"unexpected directory: {entry.path!r}"
                )
            match = _COMMENT_FILE.match(entry.name)
            if match is None:
                raise StoreStructureError(
                    f"unexpected file in comments directory: {entry.path}"
                )
            ids.append(int(match.group(1)))
        ids.sort()
        return ids

    def num_comments(self, number: int) -> int:
        """Return how many comments of issue *number* are on disk.

        Only counts directory entries; nothing is parsed.  When the
        comments directory is absent the answer is ``0`` if the issue
        itself is stored (synced, no comments yet).

        Raises:
            RecordNotFound: If neither the comments directory nor the
                issue file exists (the issue was never synced).
        """
        try:
            return len(os.listdir(self.comments_dir(number)))
        except FileNotFoundError:
            if self.issue_path(number).is_file():
                return 0
            raise RecordNotFound(
                f"issue {number} is not in the mirror at {self.root}"
            ) from None

    # ------------------------------------------------------------------
    # Lazy traversal
    # ------------------------------------------------------------------

    def iter_issues(self) -> Iterator[dict]:
        """Yield every stored issue in ascending number order."""
        for number in self.issue_numbers():
            yield self.load_issue(number)

    def iter_comments(self, number: int) -> Iterator[dict]:
        """Yield the stored comments of issue *number* in ascending id order."""
        for comment_id in self.comment_ids(number):
            yield self.load_comment(number, comment_id)


def _read_record(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        raise RecordNotFound(f"no such record: {path}") from None

"""Record versions and the write-if-newer operation.

A record's version is GitHub's ``updated_at`` timestamp.  The mirror keeps
no index of versions: a ``VersionStore`` attaches the version to the
stored file itself, so deciding whether a record is stale costs one stat
(or one small read), never a database lookup.

Two backends exist:

* ``MtimeVersionStore`` -- the version *is* the file's modification time.
  This is the historical layout and the default.
* ``SidecarVersionStore`` -- the version is kept in a companion file under
  ``<root>/.versions/``, mirroring the record's relative path.  Tools that
  touch modification times (``cp`` without ``-p``, some VCS checkouts)
  cannot corrupt it.

``RecordWriter.write_if_newer`` is the single place records are written.
Content goes to a temporary file under the mirror's scratch directory.
The backend stamps that file (or clears its stale version) before
``os.replace()`` moves it into place, so a crash leaves either the old
content and version or the new content and version.  The sidecar
backend cannot stamp two files at once; it drops the old version first,
and a crash in between leaves a record with no version, which every
later fetch rewrites.
"""

from __future__ import annotations

import calendar
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Callable, Protocol

from issue_mirror.errors import RecordNotFound

logger = logging.getLogger(__name__)

VERSIONS_DIR = ".versions"

_NS_PER_SECOND = 1_000_000_000


# ---------------------------------------------------------------------------
# Version values
# ---------------------------------------------------------------------------


def parse_version(value: str | None) -> datetime | None:
    """Parse a GitHub timestamp (``2016-05-01T12:00:00Z``) into UTC.

    ``None`` (an unset version) is returned unchanged.
    """
    if value is None:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_version(version: datetime) -> str:
    """Render *version* the way GitHub does."""
    text = version.astimezone(timezone.utc).isoformat()
    return text.replace("+00:00", "Z")


def version_to_ns(version: datetime) -> int:
    """Exact nanoseconds since the epoch (no float rounding)."""
    seconds = calendar.timegm(version.astimezone(timezone.utc).timetuple())
    return seconds * _NS_PER_SECOND + version.microsecond * 1000


def version_from_ns(ns: int) -> datetime:
    seconds, rem = divmod(ns, _NS_PER_SECOND)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(
        microsecond=rem // 1000
    )


def is_stale(stored: datetime | None, remote: datetime) -> bool:
    """Return ``True`` unless the stored version equals *remote* exactly.

    Equality, not ordering, is the test: the remote is authoritative, so a
    remote version older than the stored one (a revert, a clock fix) is
    still mirrored.
    """
    return stored is None or stored != remote


def dump_record(record: dict) -> bytes:
    """Serialize *record* as tab-indented JSON ending in one newline."""
    text = json.dumps(record, indent="\t", ensure_ascii=False)
    return (text.rstrip("\n") + "\n").encode("utf-8")


# ---------------------------------------------------------------------------
# Version backends
# ---------------------------------------------------------------------------


class VersionStore(Protocol):
    def get(self, path: Path) -> datetime | None: ...

    def set(self, path: Path, version: datetime) -> None: ...

    def prepare(self, tmp_path: Path, path: Path, version: datetime) -> None:
        """Called on the temporary file before it replaces *path*."""
        ...

    def commit(self, path: Path, version: datetime) -> None:
        """Called once the new content is in place at *path*."""
        ...


class MtimeVersionStore:
    """Versions carried by the stored file's modification time.

    A rename keeps the file's mtime, so the temporary file is stamped
    before it is moved into place and nothing is left to do afterwards.
    """

    def get(self, path: Path) -> datetime | None:
        try:
            return version_from_ns(os.stat(path).st_mtime_ns)
        except FileNotFoundError:
            return None

    def set(self, path: Path, version: datetime) -> None:
        ns = version_to_ns(version)
        os.utime(path, ns=(ns, ns))

    def prepare(self, tmp_path: Path, path: Path, version: datetime) -> None:
        self.set(tmp_path, version)

    def commit(self, path: Path, version: datetime) -> None:
        pass


class SidecarVersionStore:
    """Versions kept in companion files under ``<root>/.versions/``.

    Args:
        root: The mirror root.  Record paths passed to ``get``/``set``
            must live below it.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def meta_path(self, path: Path) -> Path:
        relative = Path(path).relative_to(self.root)
        return self.root / VERSIONS_DIR / relative.with_suffix(".version")

    def get(self, path: Path) -> datetime | None:
        try:
            text = self.meta_path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return parse_version(text.strip())

    def set(self, path: Path, version: datetime) -> None:
        meta = self.meta_path(path)
        _atomic_write(
            meta, (format_version(version) + "\n").encode("utf-8"), meta.parent
        )

    def prepare(self, tmp_path: Path, path: Path, version: datetime) -> None:
        # The old version must not outlive the old content.
        self.meta_path(path).unlink(missing_ok=True)

    def commit(self, path: Path, version: datetime) -> None:
        self.set(path, version)


def create_version_store(backend: str, root: Path | str) -> VersionStore:
    """Build the version backend named *backend* (``mtime`` or ``sidecar``)."""
    if backend == "mtime":
        return MtimeVersionStore()
    if backend == "sidecar":
        return SidecarVersionStore(root)
    raise ValueError(
        f"Unknown version backend '{backend}': expected 'mtime' or 'sidecar'"
    )


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class RecordWriter:
    """Write records only when their version says they changed.

    Args:
        versions: Backend that reads and stamps record versions.
        scratch_dir: Where temporary files are created before being moved
            into place (normally ``IssueStore.scratch_dir``).  Must be on
            the same filesystem as the records and outside the issues
            tree, whose scan rejects stray files.
    """

    def __init__(self, versions: VersionStore, scratch_dir: Path | str) -> None:
        self.versions = versions
        self.scratch_dir = Path(scratch_dir)

    def write_if_newer(
        self, path: Path, version: datetime | None, record: dict
    ) -> bool:
        """Store *record* at *path* stamped with *version*.

        With a real *version*: no-op when the stored version already
        equals it; otherwise the record is written and stamped.

        With ``version=None``: a re-normalize write.  The file must exist;
        its content is replaced and its current version is kept.

        Returns:
            Whether bytes were written.

        Raises:
            RecordNotFound: If ``version`` is ``None`` and nothing is
                stored at *path* (re-normalizing never creates records).
        """
        path = Path(path)
        exists = path.is_file()
        if version is None:
            if not exists:
                raise RecordNotFound(
                    f"cannot re-normalize missing record: {path}"
                )
            version = self.versions.get(path)
        elif exists and not is_stale(self.versions.get(path), version):
            return False

        # A re-normalize write of a record with no readable version
        # (sidecar missing) replaces the content and leaves it unversioned.
        if version is None:
            _atomic_write(path, dump_record(record), self.scratch_dir)
        else:
            _atomic_write(
                path,
                dump_record(record),
                self.scratch_dir,
                partial(self.versions.prepare, path=path, version=version),
            )
            self.versions.commit(path, version)

        logger.info("Wrote %s", path)
        return True


def _atomic_write(
    path: Path,
    data: bytes,
    scratch_dir: Path,
    before_replace: Callable[[Path], None] | None = None,
) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    scratch_dir.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(scratch_dir), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.chmod(tmp_path, 0o644)
        if before_replace is not None:
            before_replace(Path(tmp_path))
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

"""Exception hierarchy shared by the store, the client and the engine."""


class MirrorError(Exception):
    """Base class for all issue-mirror failures."""


class StoreStructureError(MirrorError):
    """The on-disk store contains something it should not.

    Raised for directories deeper than the shard level and for files whose
    names do not parse as the expected numeric record pattern.  Either means
    a corrupted store or a foreign file, so it is never silently skipped.
    """


class RecordNotFound(MirrorError, FileNotFoundError):
    """A stored record (or its comments directory) does not exist."""


class GitHubError(MirrorError):
    """The GitHub API answered with a non-success status."""

    def __init__(self, status_code: int, message: str, url: str = ""):
        self.status_code = status_code
        self.message = message
        self.url = url
        super().__init__(f"GitHub API error {status_code}: {message}")

"""Shared pytest fixtures for issue-mirror tests."""

from unittest.mock import MagicMock

import pytest

from issue_mirror.config import Config

_ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "ISSUE_MIRROR_CONFIG",
    "ISSUE_MIRROR_OWNER",
    "ISSUE_MIRROR_REPO",
    "ISSUE_MIRROR_ROOT",
    "ISSUE_MIRROR_TOKEN_FILE",
    "ISSUE_MIRROR_RECLEAN",
    "ISSUE_MIRROR_DEBUG",
    "ISSUE_MIRROR_IDLE_PAGES",
    "ISSUE_MIRROR_VERSION_BACKEND",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's environment and config files out of tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def mock_config(tmp_path):
    """Create a Config instance pointing at a temporary mirror root."""
    return Config(
        owner="golang",
        repo="go",
        token="testtoken",
        root=str(tmp_path / "mirror"),
        username="testuser",
    )


@pytest.fixture
def mock_github_client(mock_config):
    """Create a mock GitHubClient instance for testing."""
    from issue_mirror.core.client import GitHubClient

    client = MagicMock(spec=GitHubClient)
    client.config = mock_config
    return client


@pytest.fixture
def make_issue():
    """Factory for GitHub-shaped issue payloads."""

    def _make(number, updated_at="2016-05-01T12:00:00Z", comments=0, **extra):
        issue = {
            "url": f"https://api.github.com/repos/golang/go/issues/{number}",
            "html_url": f"https://github.com/golang/go/issues/{number}",
            "id": 100000 + number,
            "number": number,
            "title": f"issue {number}",
            "user": {
                "login": "gopher",
                "id": 1,
                "avatar_url": "https://avatars.githubusercontent.com/u/1",
                "url": "https://api.github.com/users/gopher",
                "html_url": "https://github.com/gopher",
            },
            "labels": [],
            "state": "open",
            "comments": comments,
            "created_at": "2016-01-01T00:00:00Z",
            "updated_at": updated_at,
            "body": "body",
        }
        issue.update(extra)
        return issue

    return _make


@pytest.fixture
def make_comment():
    """Factory for GitHub-shaped comment payloads."""

    def _make(comment_id, number, updated_at="2016-05-01T12:00:00Z", **extra):
        comment = {
            "url": f"https://api.github.com/repos/golang/go/issues/comments/{comment_id}",
            "html_url": f"https://github.com/golang/go/issues/{number}#issuecomment-{comment_id}",
            "issue_url": f"https://api.github.com/repos/golang/go/issues/{number}",
            "id": comment_id,
            "user": {"login": "gopher", "id": 1, "url": "https://api.github.com/users/gopher"},
            "created_at": "2016-01-01T00:00:00Z",
            "updated_at": updated_at,
            "body": f"comment {comment_id}",
        }
        comment.update(extra)
        return comment

    return _make

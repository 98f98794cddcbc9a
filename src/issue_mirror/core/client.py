import logging
from typing import Any
from urllib.parse import parse_qs, urlparse

import requests

from .. import __version__
from ..config import Config
from ..errors import GitHubError
from ..mirror.models import Page

logger = logging.getLogger(__name__)


class GitHubClient:
    """Read-only GitHub REST client for one repository's issues.

    Implements the ``IssueSource`` protocol used by ``MirrorEngine``.
    """

    def __init__(self, config: Config):
        self.config = config
        self._session: requests.Session | None = None
        self.repo_url = self._get_repo_url()

    @property
    def session(self) -> requests.Session:
        """Lazily created session carrying auth and API headers."""
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _get_repo_url(self) -> str:
        base = self.config.api_url.rstrip("/")
        return f"{base}/repos/{self.config.owner}/{self.config.repo}"

    def _create_session(self) -> requests.Session:
        user_agent = f"issue-mirror/{__version__}"
        if self.config.username:
            user_agent += f" ({self.config.username})"
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"token {self.config.token}",
                "User-Agent": user_agent,
            }
        )
        return session

    def _get_page(self, path: str, params: dict[str, Any]) -> Page:
        """
        GET one page of a list endpoint below the repository URL.
        """
        url = f"{self.repo_url}/{path}"
        response = self.session.get(url, params=params, timeout=(10, 60))
        if not response.ok:
            raise GitHubError(
                response.status_code, _error_message(response), url
            )

        items = response.json()
        if not isinstance(items, list):
            raise GitHubError(
                response.status_code,
                f"expected a JSON list, got {type(items).__name__}",
                url,
            )
        logger.debug(
            "GET %s page=%s: %d items (rate limit remaining: %s)",
            url,
            params.get("page"),
            len(items),
            response.headers.get("X-RateLimit-Remaining"),
        )
        return Page(items=items, next_page=_next_page(response))

    def list_issues(self, page: int, per_page: int = 100) -> Page:
        """
        List issues in every state, most recently updated first.

        Pull requests appear here too; GitHub models them as issues.
        """
        return self._get_page(
            "issues",
            {
                "state": "all",
                "sort": "updated",
                "direction": "desc",
                "page": page,
                "per_page": per_page,
            },
        )

    def list_comments(
        self, number: int, page: int, per_page: int = 100
    ) -> Page:
        """
        List the comments on issue *number* (oldest first).
        """
        return self._get_page(
            f"issues/{number}/comments",
            {"page": page, "per_page": per_page},
        )


def _next_page(response: requests.Response) -> int | None:
    """Page number of the ``rel="next"`` Link, or None on the last page."""
    link = response.links.get("next")
    if not link:
        return None
    pages = parse_qs(urlparse(link["url"]).query).get("page")
    if not pages:
        return None
    return int(pages[0])


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason or "Unknown error"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason or "Unknown error"

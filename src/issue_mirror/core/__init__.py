"""GitHub transport for the issue mirror."""

from .client import GitHubClient

__all__ = ["GitHubClient"]

"""Unified configuration schema for issue_mirror.

Defines Pydantic models for the YAML config structure with dedicated
sections for the GitHub source, the mirror destination and logging.

Usage:
    from issue_mirror.config_schema import build_config, yaml_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    fallbacks = yaml_fallbacks(unified)
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub source settings.

    All fields are optional to support zero-config: env vars, the token
    file and CLI args can supply them at runtime instead.
    """

    owner: str | None = Field(
        default=None, description="Repository owner (user or org)"
    )
    repo: str | None = Field(default=None, description="Repository name")
    token: str | None = Field(
        default=None, description="API token (prefer token_file)"
    )
    token_file: str | None = Field(
        default=None,
        description="File holding '<username>:<token>'",
    )
    api_url: str | None = Field(
        default=None, description="GitHub API base URL"
    )

    model_config = {"frozen": True}


class MirrorConfig(BaseModel):
    """Mirror destination and run behaviour."""

    root: str | None = Field(
        default=None, description="Mirror root directory"
    )
    reclean: bool = Field(
        default=False,
        description="Re-normalize already stored records",
    )
    idle_pages: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Write-free issue pages that end the issues pass (1-100)",
    )
    version_backend: Literal["mtime", "sidecar"] = Field(
        default="mtime",
        description="Where record versions are kept",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    mirror: MirrorConfig = Field(default_factory=MirrorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully -- anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def yaml_fallbacks(unified: UnifiedConfig) -> dict:
    """Flatten the ``github`` and ``mirror`` sections for ``load_config()``.

    ``None`` values are dropped so they never shadow a built-in default.
    """
    merged = {
        **unified.github.model_dump(),
        **unified.mirror.model_dump(),
    }
    return {k: v for k, v in merged.items() if v is not None}

"""Runtime configuration for a mirror run.

Reads settings from CLI args, environment variables, .env files, YAML
config file fallbacks and the GitHub token file.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    GITHUB_TOKEN: API token (optional when a token file exists)
    ISSUE_MIRROR_OWNER: Repository owner (optional, default: golang)
    ISSUE_MIRROR_REPO: Repository name (optional, default: go)
    ISSUE_MIRROR_ROOT: Mirror root directory (required unless --dest)
    ISSUE_MIRROR_TOKEN_FILE: Token file path
        (optional, default: ~/keys/github-mirror-go-issues)
    ISSUE_MIRROR_RECLEAN: Re-normalize stored records (optional, default: false)
    ISSUE_MIRROR_IDLE_PAGES: Write-free pages that end the issues pass
        (optional, default: 1)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_OWNER = "golang"
DEFAULT_REPO = "go"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TOKEN_FILE = Path("~") / "keys" / "github-mirror-go-issues"
VERSION_BACKENDS = ("mtime", "sidecar")


@dataclass
class Config:
    owner: str
    repo: str
    token: str
    root: str
    username: str | None = None
    api_url: str = DEFAULT_API_URL
    reclean: bool = False
    idle_pages: int = 1
    version_backend: str = "mtime"
    debug: bool = False


def read_token_file(path: Path | str) -> tuple[str, str]:
    """Read a ``<username>:<token>`` credentials file.

    Returns:
        ``(username, token)``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the content is not of the expected form.
    """
    path = Path(path).expanduser()
    text = path.read_text(encoding="utf-8").strip()
    username, sep, token = text.partition(":")
    if not sep or not username or not token:
        raise ValueError(
            f"Expected token file {path} to be of form <username>:<token>"
        )
    return username, token


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the API URL is malformed, owner/repo/root are empty,
            or the numeric and backend settings are out of range.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    if not config.owner.strip() or not config.repo.strip():
        raise ValueError("Repository owner and name cannot be empty.")

    if not config.root.strip():
        raise ValueError(
            "Mirror root cannot be empty. Set ISSUE_MIRROR_ROOT or pass --dest."
        )

    if not (1 <= config.idle_pages <= 100):
        raise ValueError(
            f"Invalid idle_pages '{config.idle_pages}': must be a number between 1 and 100"
        )

    if config.version_backend not in VERSION_BACKENDS:
        raise ValueError(
            f"Invalid version backend '{config.version_backend}': "
            f"expected one of {', '.join(VERSION_BACKENDS)}"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _resolve_credentials(
    token_file: str | None, fb: dict
) -> tuple[str | None, str]:
    """Return ``(username, token)``: CLI token file > env > YAML > default file."""
    if not token_file:
        env_token = os.getenv("GITHUB_TOKEN")
        if env_token:
            return None, env_token.strip()
        if fb.get("token"):
            return None, str(fb["token"]).strip()

    path = (
        token_file
        or os.getenv("ISSUE_MIRROR_TOKEN_FILE")
        or fb.get("token_file")
        or str(DEFAULT_TOKEN_FILE)
    )
    try:
        return read_token_file(path)
    except FileNotFoundError:
        raise ValueError(
            f"GitHub token not found. Set GITHUB_TOKEN, or create {path} "
            "containing <username>:<token>."
        ) from None


def load_config(
    owner: str | None = None,
    repo: str | None = None,
    root: str | None = None,
    token_file: str | None = None,
    reclean: bool = False,
    debug: bool = False,
    idle_pages: int | None = None,
    version_backend: str | None = None,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        owner: Override repository owner.
        repo: Override repository name.
        root: Override mirror root directory.
        token_file: Override token file path (wins over ``GITHUB_TOKEN``).
        reclean: Re-normalize stored records (CLI flag).
        debug: Enable debug logging (CLI flag).
        idle_pages: Override the issues-pass stopping window.
        version_backend: Override the version backend.
        yaml_fallbacks: Flattened ``github`` and ``mirror`` YAML sections.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If the mirror root or a token is missing after checking
            all sources, or any value is invalid.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > default ---

    final_owner = (
        owner or os.getenv("ISSUE_MIRROR_OWNER") or fb.get("owner") or DEFAULT_OWNER
    )
    final_repo = (
        repo or os.getenv("ISSUE_MIRROR_REPO") or fb.get("repo") or DEFAULT_REPO
    )
    final_api_url = (
        os.getenv("GITHUB_API_URL") or fb.get("api_url") or DEFAULT_API_URL
    )

    final_root = root or os.getenv("ISSUE_MIRROR_ROOT") or fb.get("root")
    if not final_root:
        raise ValueError(
            "Mirror root not found. Set ISSUE_MIRROR_ROOT environment variable, "
            "pass --dest CLI argument, or add 'root' to the mirror section of config.yml."
        )
    final_root = str(Path(final_root).expanduser())

    username, token = _resolve_credentials(token_file, fb)

    # --- Boolean fields: CLI > env > YAML > default ---

    if reclean:
        final_reclean = True
    else:
        env_reclean = _get_bool_env("ISSUE_MIRROR_RECLEAN")
        if env_reclean is not None:
            final_reclean = env_reclean
        else:
            final_reclean = bool(fb.get("reclean", False))

    if debug:
        final_debug = True
    else:
        final_debug = bool(_get_bool_env("ISSUE_MIRROR_DEBUG"))

    # --- Numeric / choice fields: CLI > env > YAML > default ---

    idle_raw = os.getenv("ISSUE_MIRROR_IDLE_PAGES")
    if idle_pages is not None:
        final_idle = idle_pages
    elif idle_raw is not None:
        try:
            final_idle = int(idle_raw)
        except ValueError:
            raise ValueError(
                f"Invalid ISSUE_MIRROR_IDLE_PAGES '{idle_raw}': must be a number between 1 and 100"
            ) from None
    else:
        final_idle = int(fb.get("idle_pages", 1))

    final_backend = (
        version_backend
        or os.getenv("ISSUE_MIRROR_VERSION_BACKEND")
        or fb.get("version_backend")
        or "mtime"
    )

    config = Config(
        owner=final_owner.strip(),
        repo=final_repo.strip(),
        token=token,
        root=final_root,
        username=username,
        api_url=final_api_url,
        reclean=final_reclean,
        idle_pages=final_idle,
        version_backend=final_backend,
        debug=final_debug,
    )

    validate_config(config)

    return config

"""
Discovery and merging of issue-mirror YAML config files.

A machine-wide file usually names the token file and API URL once; a
per-mirror file next to where the mirror runs names the repository and
destination.  Files are merged section by section, key by key, so the
per-mirror file only states what differs:

    # ~/.config/issue_mirror/config.yml
    github:
      token_file: ~/keys/github-mirror-go-issues

    # ./.issue_mirror/config.yml
    github:
      repo: tools
    mirror:
      root: ${MIRROR_HOME:-/srv}/tools-issues

Only the ``github``, ``mirror`` and ``logging`` sections are read.
String values may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV = "ISSUE_MIRROR_CONFIG"
PROJECT_DIR = ".issue_mirror"
CONFIG_NAMES = ("config.yml", "config.yaml")
SECTIONS = ("github", "mirror", "logging")

_VAR = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")

Sections = dict[str, dict[str, Any]]


def expand_vars(text: str) -> str:
    """Substitute ``${VAR}`` / ``${VAR:-default}`` in *text*.

    An unset or empty variable yields its default, or the empty string.
    """
    return _VAR.sub(
        lambda m: os.environ.get(m.group(1)) or (m.group(2) or ""), text
    )


def user_config_path() -> Path:
    return Path.home() / ".config" / "issue_mirror" / "config.yml"


def discover_config_files() -> list[Path]:
    """Return the config files in effect, most specific first.

    ``$ISSUE_MIRROR_CONFIG`` comes first and must exist.  Then the first
    of ``./.issue_mirror/config.yml`` and ``config.yaml``, then the user
    file.

    Raises:
        FileNotFoundError: If ``$ISSUE_MIRROR_CONFIG`` names a missing file.
    """
    found: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"{CONFIG_ENV} names a missing file: {path}")
        found.append(path)

    project_dir = Path.cwd() / PROJECT_DIR
    for name in CONFIG_NAMES:
        if (project_dir / name).is_file():
            found.append(project_dir / name)
            break

    if user_config_path().is_file():
        found.append(user_config_path())
    return found


def read_config_file(path: Path) -> Sections:
    """Load the known sections of one config file, variables expanded.

    Raises:
        ValueError: If the file or one of its sections is not a mapping.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"{path}: expected sections at the top level, "
            f"got {type(data).__name__}"
        )

    unknown = sorted(set(data) - set(SECTIONS))
    if unknown:
        logger.warning("%s: ignoring unknown sections %s", path, ", ".join(unknown))

    sections: Sections = {}
    for name in SECTIONS:
        values = data.get(name)
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ValueError(f"{path}: section '{name}' must be a mapping")
        sections[name] = {
            key: expand_vars(value) if isinstance(value, str) else value
            for key, value in values.items()
        }
    return sections


def load_hierarchical_config() -> Sections:
    """Merge every discovered config file; empty when there are none."""
    merged: Sections = {}
    for path in reversed(discover_config_files()):
        logger.debug("Loading config: %s", path)
        for name, values in read_config_file(path).items():
            merged.setdefault(name, {}).update(values)
    return merged

"""Command-line entry point for ``issue-mirror``."""

import argparse
import json
import logging
import sys
from typing import Any

import requests
import yaml
from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import LoggingConfig, build_config, yaml_fallbacks
from .core.client import GitHubClient
from .errors import MirrorError
from .logger import setup_logging
from .mirror import (
    IssueStore,
    MirrorEngine,
    RecordWriter,
    create_version_store,
    format_mirror_report,
    report_to_json,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="issue-mirror",
        description="Incrementally mirror a GitHub repository's issues and comments to disk",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Mirror golang/go into ./go-issue-mirror (token in ~/keys/github-mirror-go-issues)
  issue-mirror --dest ./go-issue-mirror

  # Another repository, token from the environment
  GITHUB_TOKEN=... issue-mirror --owner python --repo cpython --dest ./cpython-issues

  # Apply updated normalization rules to everything already mirrored
  issue-mirror --dest ./go-issue-mirror --reclean

Settings may also come from .env, ISSUE_MIRROR_* environment variables, or
.issue_mirror/config.yml. Progress is logged to stderr; the report goes to stdout.
        """,
    )
    parser.add_argument("--owner", help="Repository owner (default: golang)")
    parser.add_argument("--repo", help="Repository name (default: go)")
    parser.add_argument(
        "--dest",
        help="Mirror root directory (takes precedence over ISSUE_MIRROR_ROOT and config files)",
    )
    parser.add_argument(
        "--token-file",
        help="File containing <username>:<token> "
        "(default: ~/keys/github-mirror-go-issues, or GITHUB_TOKEN if set)",
    )
    parser.add_argument(
        "--reclean",
        action="store_true",
        help="Re-normalize already mirrored records, keeping their versions",
    )
    parser.add_argument(
        "--idle-pages",
        type=int,
        help="Consecutive issue pages without writes that end the issues pass (default: 1)",
    )
    parser.add_argument(
        "--version-backend",
        choices=["mtime", "sidecar"],
        help="Keep record versions in file mtimes (default) or in .versions/ sidecar files",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also append log lines to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log line format (default: text)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the run report as JSON",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"issue-mirror version {__version__}",
    )
    return parser


def resolve_config(
    args: argparse.Namespace,
) -> tuple[Config, LoggingConfig]:
    """Merge CLI args, env vars, .env and YAML into a validated Config.

    Raises:
        ValueError: If configuration is missing or invalid.
    """
    load_dotenv()

    fallbacks: dict[str, Any] | None = None
    log_settings = LoggingConfig()
    if discover_config_files():
        unified = build_config(load_hierarchical_config())
        fallbacks = yaml_fallbacks(unified)
        log_settings = unified.logging

    config = load_config(
        owner=args.owner,
        repo=args.repo,
        root=args.dest,
        token_file=args.token_file,
        reclean=args.reclean,
        debug=args.debug,
        idle_pages=args.idle_pages,
        version_backend=args.version_backend,
        yaml_fallbacks=fallbacks,
    )
    return config, log_settings


def build_engine(config: Config, client: GitHubClient | None = None) -> MirrorEngine:
    """Wire store, writer and client together for *config*."""
    store = IssueStore(config.root)
    writer = RecordWriter(
        create_version_store(config.version_backend, store.root),
        scratch_dir=store.scratch_dir,
    )
    return MirrorEngine(
        client or GitHubClient(config),
        store,
        writer,
        reclean=config.reclean,
        idle_pages=config.idle_pages,
    )


def main(argv: list[str] | None = None) -> int:
    """Run one mirror pass and return the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config, log_settings = resolve_config(args)
    except (ValueError, OSError, yaml.YAMLError) as e:
        setup_logging(debug=args.debug)
        logger.error("Configuration error: %s", e)
        return 1

    setup_logging(
        debug=config.debug,
        log_file=args.log_file or log_settings.file,
        log_format=args.log_format or log_settings.format,
        level=log_settings.level,
    )
    logger.info(
        "Mirroring %s/%s into %s as %s%s",
        config.owner,
        config.repo,
        config.root,
        config.username or "token owner",
        " (reclean)" if config.reclean else "",
    )

    try:
        report = build_engine(config).run()
    except (MirrorError, requests.RequestException, OSError, ValueError) as e:
        logger.error("Mirror run aborted: %s", e)
        logger.debug("Traceback:", exc_info=True)
        return 1

    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_mirror_report(report))
    return 0


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()

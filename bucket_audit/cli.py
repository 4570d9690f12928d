"""
Command-line entry point.

Usage:
    bucket-audit search QUERY [--bucket NAME] [--case-sensitive] [--installed] [--json]
    bucket-audit status [--local] [--json]
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from typing import Sequence

from .common import vlog
from .config import Config, load_config, validate_config
from .installed import installed_names, list_installed
from .logging_config import get_logger, setup_logging
from .render import render_search_results, render_status, search_results_to_json, status_to_json
from .repositories import all_scope_paths, find_repositories, self_repository
from .search import SearchOptions, mark_installed, search
from .status import check_scoop_status, check_status


def cmd_search(args: argparse.Namespace, config: Config) -> int:
    """Search manifests across all buckets."""
    query = args.query.strip()
    if not query:
        get_logger().error("Search query must not be empty")
        return 2

    prefs = config.preferences
    scope_paths = all_scope_paths(config)
    repositories = find_repositories(scope_paths)
    installed = list_installed(scope_paths)

    def progress(completed: int, total: int, label: str) -> None:
        vlog(f"Scanned {completed}/{total} buckets ({label})", args.verbose)

    options = SearchOptions(
        repository=args.bucket,
        case_sensitive=args.case_sensitive,
        installed_filter=frozenset(installed_names(installed)) if args.installed else None,
    )
    hits = search(
        query,
        repositories,
        options=options,
        on_progress=progress,
        timeout=prefs.search_timeout_seconds,
        max_workers=prefs.max_workers,
        limit=prefs.result_limit,
    )
    if args.installed:
        # Already restricted to installed names, whichever bucket they came from
        hits = [replace(hit, installed=True) for hit in hits]
    else:
        hits = mark_installed(hits, installed)

    if args.json:
        print(search_results_to_json(hits))
    else:
        render_search_results(hits, query, case_sensitive=args.case_sensitive)
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Report bucket freshness and outdated packages."""
    prefs = config.preferences
    scope_paths = all_scope_paths(config)
    repositories = find_repositories(scope_paths)
    installed = list_installed(scope_paths)

    def progress(completed: int, total: int, label: str) -> None:
        vlog(f"Checked {completed}/{total} packages ({label})", args.verbose)

    scoop_status = check_scoop_status(
        self_repository(config),
        repositories,
        local=args.local or bool(prefs.local),
        stale_after_days=prefs.stale_after_days,
        git_timeout=prefs.git_timeout_seconds,
        max_workers=prefs.max_workers,
    )
    rows = check_status(
        installed,
        repositories,
        on_progress=progress,
        timeout=prefs.search_timeout_seconds,
        max_workers=prefs.max_workers,
    )

    if args.json:
        print(status_to_json(rows, scoop_status))
    else:
        render_status(rows, scoop_status)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bucket-audit",
        description="Search package buckets and report outdated installs",
    )
    parser.add_argument("--config", help="Path to a configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only print warnings and errors")
    parser.add_argument("--log-file", help="Also write a debug log to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    search_parser = sub.add_parser("search", help="Search manifests by name or binary")
    search_parser.add_argument("query", help="Substring to search for")
    search_parser.add_argument("--bucket", "-b", help="Only search this bucket")
    search_parser.add_argument("--case-sensitive", "-c", action="store_true", help="Match case exactly")
    search_parser.add_argument("--installed", "-i", action="store_true", help="Only show installed packages")
    search_parser.add_argument("--json", action="store_true", help="Emit JSON")
    search_parser.set_defaults(handler=cmd_search)

    status_parser = sub.add_parser("status", help="Show outdated packages and buckets")
    status_parser.add_argument("--local", "-l", action="store_true", help="Skip network checks")
    status_parser.add_argument("--json", action="store_true", help="Emit JSON")
    status_parser.set_defaults(handler=cmd_status)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        config = load_config(args.config, verbose=args.verbose)
    except ValueError as e:
        get_logger().error(str(e))
        return 2
    for warning in validate_config(config):
        get_logger().warning(warning)

    return args.handler(args, config)


if __name__ == "__main__":
    sys.exit(main())

"""
Output rendering for search results and status reports.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Sequence, TextIO

from .search import SearchHit
from .status import ScoopStatus, StatusRow

USE_COLOR = os.environ.get("BUCKET_AUDIT_COLOR", "1") == "1"

GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
DIM = "\033[2m"
RESET = "\033[0m"

# Column widths of the status table
NAME_WIDTH = 22
INSTALLED_WIDTH = 18
LATEST_WIDTH = 18
MISSING_DEPS_WIDTH = 22
SEPARATOR_MAX = 100


def colorize(text: str, color: str, stream: TextIO | None = None) -> str:
    """Apply an ANSI colour when colours are enabled and the stream is a TTY."""
    stream = stream or sys.stdout
    if not USE_COLOR or not text or not stream.isatty():
        return text
    return f"{color}{text}{RESET}"


def fit(text: str, width: int) -> str:
    """Pad text to a column width, eliding it with '..' when too long."""
    if len(text) > width - 1:
        return (text[: width - 3] + "..").ljust(width)
    return text.ljust(width)


def render_search_results(
    hits: Sequence[SearchHit],
    query: str,
    case_sensitive: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Print search hits grouped by repository, in arrival order."""
    stream = stream or sys.stdout
    if not hits:
        print(f"No matches found for '{query}'.", file=stream)
        return

    current_repo = None
    for hit in hits:
        if hit.repository != current_repo:
            current_repo = hit.repository
            print(colorize(f"'{current_repo}' bucket ({hit.scope.value}):", CYAN, stream), file=stream)

        line = f"    {hit.package_name} ({hit.version or '?'})"
        if hit.installed:
            line += " " + colorize("[installed]", GREEN, stream)
        matched = hit.matched_binaries(query, case_sensitive)
        if matched and query.lower() not in hit.package_name.lower():
            line += " " + colorize(f"--> includes '{', '.join(matched)}'", DIM, stream)
        print(line, file=stream)


def search_results_to_json(hits: Sequence[SearchHit]) -> str:
    return json.dumps([hit.to_dict() for hit in hits], indent=2)


def render_status(
    rows: Sequence[StatusRow],
    scoop_status: ScoopStatus,
    stream: TextIO | None = None,
) -> None:
    """
    Print the tool/bucket freshness lines followed by a table of packages
    with issues.
    """
    stream = stream or sys.stdout

    if scoop_status.self_outdated:
        print(colorize("Scoop is out of date. Run 'scoop update' to get the latest version.", YELLOW, stream), file=stream)
    else:
        print(colorize("Scoop is up to date.", GREEN, stream), file=stream)

    if scoop_status.any_bucket_outdated:
        print(colorize("Bucket(s) are out of date. Run 'scoop update' to get the latest changes.", YELLOW, stream), file=stream)
    else:
        print(colorize("All buckets are up to date.", GREEN, stream), file=stream)

    with_issues = [row for row in rows if row.has_issues()]
    if not with_issues:
        print(colorize("All packages are okay and up to date.", GREEN, stream), file=stream)
        return

    header = (
        "Name".ljust(NAME_WIDTH)
        + "Installed".ljust(INSTALLED_WIDTH)
        + "Latest".ljust(LATEST_WIDTH)
        + "Missing Dependencies".ljust(MISSING_DEPS_WIDTH)
        + "Info"
    )
    print(file=stream)
    print(header, file=stream)
    print("-" * min(len(header), SEPARATOR_MAX), file=stream)

    for row in with_issues:
        latest = (row.latest_version or "") if row.outdated else ""
        print(
            fit(row.package_name, NAME_WIDTH)
            + fit(row.installed_version or "", INSTALLED_WIDTH)
            + fit(latest, LATEST_WIDTH)
            + fit(" | ".join(row.missing_deps), MISSING_DEPS_WIDTH)
            + ", ".join(row.info),
            file=stream,
        )


def status_to_json(rows: Sequence[StatusRow], scoop_status: ScoopStatus) -> str:
    """Serialize a status report; held packages are listed even without other issues."""
    payload = scoop_status.to_dict()
    payload["apps"] = [row.to_dict() for row in rows if row.has_issues() or row.held]
    return json.dumps(payload, indent=2)

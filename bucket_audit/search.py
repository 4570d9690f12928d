"""
Parallel manifest search across repositories.

One scan task per repository lists its manifest files and keeps those whose
package name or binary aliases contain the query. Tasks run concurrently
with a per-task timeout; results are concatenated in arrival order,
optionally restricted to installed packages, and capped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Collection, Iterable, Sequence

from .config import DEFAULT_MAX_WORKERS, DEFAULT_RESULT_LIMIT, DEFAULT_SEARCH_TIMEOUT_SECONDS
from .fanout import TaskOutcome, run_fanout
from .installed import InstalledPackage
from .manifests import iter_manifest_files, read_manifest, to_record
from .repositories import RepositoryRef, Scope

logger = logging.getLogger(__name__)

SEARCH_TASK_TIMEOUT_SECONDS = DEFAULT_SEARCH_TIMEOUT_SECONDS
SEARCH_RESULT_LIMIT = DEFAULT_RESULT_LIMIT

ProgressCallback = Callable[[int, int, str], None]


@dataclass(frozen=True)
class SearchOptions:
    """
    Search parameters.

    Attributes:
        repository: Only scan the repository with this name (case-insensitive)
        case_sensitive: Match the query without case folding
        installed_filter: Keep only hits whose package name is in this set
            (compared case-insensitively)
    """
    repository: str | None = None
    case_sensitive: bool = False
    installed_filter: frozenset[str] | None = None


@dataclass(frozen=True)
class SearchHit:
    """A manifest matching a search query."""

    package_name: str
    version: str
    repository: str
    scope: Scope
    binaries: tuple[str, ...] = ()
    description: str | None = None
    installed: bool = False

    def matched_binaries(self, query: str, case_sensitive: bool = False) -> list[str]:
        """Binary aliases containing the query."""
        needle = query if case_sensitive else query.lower()
        return [
            alias for alias in self.binaries
            if needle in (alias if case_sensitive else alias.lower())
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.package_name,
            "version": self.version,
            "bucket": self.repository,
            "scope": self.scope.value,
            "binaries": list(self.binaries),
            "description": self.description,
            "installed": self.installed,
        }


def _contains(haystack: str, needle: str, case_sensitive: bool) -> bool:
    if case_sensitive:
        return needle in haystack
    return needle in haystack.lower()


def scan_repository(
    repository: RepositoryRef,
    query: str,
    case_sensitive: bool = False,
) -> list[SearchHit]:
    """
    Scan one repository for manifests matching a query.

    An unlistable directory yields no hits; malformed manifests are skipped.
    """
    needle = query if case_sensitive else query.lower()
    hits: list[SearchHit] = []

    try:
        files = list(iter_manifest_files(repository.location))
    except OSError as e:
        logger.debug("Cannot list repository %s: %s", repository.location, e)
        return hits

    for package_name, path in files:
        result = read_manifest(path)
        if not result.ok:
            logger.debug("Skipping malformed manifest %s: %s", path, result.error)
            continue
        record = to_record(package_name, result)
        if _contains(record.package_name, needle, case_sensitive) or any(
            _contains(alias, needle, case_sensitive) for alias in record.binaries
        ):
            hits.append(SearchHit(
                package_name=record.package_name,
                version=record.version,
                repository=repository.name,
                scope=repository.scope,
                binaries=record.binaries,
                description=record.description,
            ))

    return hits


def search(
    query: str,
    repositories: Sequence[RepositoryRef],
    options: SearchOptions | None = None,
    on_progress: ProgressCallback | None = None,
    timeout: float = SEARCH_TASK_TIMEOUT_SECONDS,
    max_workers: int = DEFAULT_MAX_WORKERS,
    limit: int = SEARCH_RESULT_LIMIT,
) -> list[SearchHit]:
    """
    Search manifests across repositories in parallel.

    Args:
        query: Substring to look for in package names and binary aliases
        repositories: Candidate repositories, as enumerated by the locator
        options: Repository filter, case sensitivity, installed filter
        on_progress: Called as (completed, total, repository_name) once per
            finished, failed or timed-out task, on the calling thread
        timeout: Per-repository scan budget in seconds
        max_workers: Upper bound on concurrent scans
        limit: Maximum number of hits returned

    Returns:
        Hits in arrival order, at most ``limit`` of them. Never raises for
        unreadable repositories or manifests; the worst case is [].
    """
    options = options or SearchOptions()
    if not query:
        return []

    targets = list(repositories)
    if options.repository is not None:
        wanted = options.repository.lower()
        targets = [repo for repo in targets if repo.name.lower() == wanted]
    if not targets:
        logger.debug("No repositories to search")
        return []

    total = len(targets)
    completed = 0

    def report(outcome: TaskOutcome) -> None:
        nonlocal completed
        completed += 1
        if outcome.timed_out:
            logger.debug("Scan of %s timed out", outcome.label)
        if on_progress is not None:
            on_progress(completed, total, outcome.label)

    tasks = [
        (repo.name, lambda repo=repo: scan_repository(repo, query, options.case_sensitive))
        for repo in targets
    ]
    outcomes = run_fanout(tasks, timeout=timeout, max_workers=max_workers, on_complete=report)

    hits: list[SearchHit] = []
    for outcome in outcomes:
        if outcome.ok and outcome.result:
            hits.extend(outcome.result)

    if options.installed_filter is not None:
        allowed = {name.lower() for name in options.installed_filter}
        hits = [hit for hit in hits if hit.package_name.lower() in allowed]

    return hits[:limit]


def mark_installed(hits: Iterable[SearchHit], installed: Collection[InstalledPackage]) -> list[SearchHit]:
    """
    Overlay installation state onto search hits.

    A hit counts as installed when a package with the same name is installed
    from the hit's repository. Installs with no recorded bucket match a hit
    from any repository.
    """
    sources: dict[str, set[str | None]] = {}
    for package in installed:
        sources.setdefault(package.name.lower(), set()).add(
            package.bucket.lower() if package.bucket else None
        )

    def is_installed(hit: SearchHit) -> bool:
        buckets = sources.get(hit.package_name.lower(), set())
        return None in buckets or hit.repository.lower() in buckets

    return [replace(hit, installed=is_installed(hit)) for hit in hits]

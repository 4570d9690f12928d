"""
Staleness reconciliation for repositories and installed packages.

Answers two questions under strict time bounds while tolerating partial
failure:

- Is the tool's own checkout, or any bucket, behind its remote?
  (``is_repository_stale``, ``any_stale``, ``check_scoop_status``)
- Which installed packages have a newer manifest available?
  (``check_status``)

Probe failures resolve to "not stale" and are never raised to the caller.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

from . import git
from .config import (
    DEFAULT_GIT_TIMEOUT_SECONDS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_SEARCH_TIMEOUT_SECONDS,
    DEFAULT_STALE_AFTER_DAYS,
)
from .fanout import TaskOutcome, race_for_true, run_fanout
from .installed import InstalledPackage
from .manifests import FoundManifest, find_manifests, manifest_deprecated, manifest_exists
from .repositories import SELF_PACKAGE, RepositoryRef, Scope
from .versions import is_outdated, latest_of

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
STATUS_TASK_TIMEOUT_SECONDS = DEFAULT_SEARCH_TIMEOUT_SECONDS

ProgressCallback = Callable[[int, int, str], None]


@dataclass(frozen=True)
class StatusRow:
    """
    Status of one installed package.

    Attributes:
        package_name: Installed package name
        installed_version: Version on disk, None if unresolvable
        latest_version: Best manifest version found, None if no manifest
        outdated: Whether latest_version is strictly newer
        scope: Install scope of the package
        failed: Installation has no usable current version
        held: Updates are held for the package
        deprecated: A matching manifest lives in a deprecated location
        removed: No repository carries a manifest for the package
        missing_deps: Placeholder for dependency checks (always empty)
        info: Human-readable labels for the flags above
    """
    package_name: str
    installed_version: str | None
    latest_version: str | None
    outdated: bool
    scope: Scope = Scope.USER
    failed: bool = False
    held: bool = False
    deprecated: bool = False
    removed: bool = False
    missing_deps: tuple[str, ...] = ()
    info: tuple[str, ...] = ()

    def has_issues(self) -> bool:
        """Whether the row deserves a line in the status report."""
        return (
            self.outdated
            or self.failed
            or self.deprecated
            or self.removed
            or bool(self.missing_deps)
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.package_name,
            "installed_version": self.installed_version,
            "latest_version": self.latest_version,
            "scope": self.scope.value,
            "outdated": self.outdated,
            "failed": self.failed,
            "deprecated": self.deprecated,
            "removed": self.removed,
            "held": self.held,
            "missing_dependencies": list(self.missing_deps),
            "info": list(self.info),
        }


@dataclass(frozen=True)
class ScoopStatus:
    """Freshness of the tool's own checkout and of the bucket set."""

    self_outdated: bool = False
    any_bucket_outdated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "scoop": {"outdated": self.self_outdated},
            "buckets": {"outdated": self.any_bucket_outdated},
        }


def _older_than(location: Path, days: int, now: float | None) -> bool:
    mtime = os.stat(location).st_mtime
    current = time.time() if now is None else now
    return mtime < current - days * SECONDS_PER_DAY


def is_repository_stale(
    location: Path,
    stale_after_days: int = DEFAULT_STALE_AFTER_DAYS,
    git_timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS,
    now: float | None = None,
) -> bool:
    """
    Decide whether a repository checkout is behind its remote.

    Without git metadata, the directory counts as stale once its
    modification time is older than ``stale_after_days``. With git metadata
    the remote is fetched and the commits on ``origin/<branch>`` missing
    from ``HEAD`` are counted.

    Args:
        location: Repository checkout root
        stale_after_days: Age threshold for non-git directories
        git_timeout: Budget per git call in seconds
        now: Reference timestamp (defaults to the current time)

    Returns:
        True if newer content exists; False otherwise or on any failure
    """
    location = Path(location)
    try:
        if not git.is_git_repo(location):
            return _older_than(location, stale_after_days, now)
    except OSError as e:
        logger.warning("Could not check for updates in repository %s: %s", location, e)
        return False

    count = _commits_behind(location, git_timeout)
    if count is None:
        logger.warning("Could not check for updates in repository %s", location)
        return False
    return count > 0


def _commits_behind(location: Path, git_timeout: float) -> int | None:
    if not git.fetch(location, timeout=git_timeout):
        return None
    branch = git.current_branch(location, timeout=git_timeout)
    if branch is None:
        return None
    return git.commit_count(location, "HEAD", f"origin/{branch}", timeout=git_timeout)


def any_stale(
    probes: Sequence[Callable[[], bool]],
    timeout: float | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> bool:
    """
    Race freshness probes to the first positive.

    Returns True as soon as one probe returns True. Returns False only after
    every probe has returned False, failed, or timed out.
    """
    tasks = [(f"probe-{index}", probe) for index, probe in enumerate(probes)]
    return race_for_true(tasks, timeout=timeout, max_workers=max_workers)


def any_repository_stale(
    repositories: Sequence[RepositoryRef],
    stale_after_days: int = DEFAULT_STALE_AFTER_DAYS,
    git_timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> bool:
    """Race ``is_repository_stale`` across every repository checkout."""
    roots: dict[Path, str] = {}
    for repo in repositories:
        roots.setdefault(repo.git_root, repo.name)

    tasks = [
        (name, lambda root=root: is_repository_stale(root, stale_after_days, git_timeout))
        for root, name in roots.items()
    ]
    return race_for_true(tasks, max_workers=max_workers)


def _latest_version(package: InstalledPackage, found: Sequence[FoundManifest]) -> str | None:
    # The bucket a package was installed from is authoritative when it has a version
    if package.bucket:
        for manifest in found:
            if manifest.repository.name == package.bucket and manifest.record.version:
                return manifest.record.version
    return latest_of(manifest.record.version for manifest in found)


def lookup_status(
    package: InstalledPackage,
    repositories: Sequence[RepositoryRef],
) -> StatusRow:
    """
    Compute the status row for one installed package.

    A package with no manifest anywhere gets ``latest_version=None`` and
    ``outdated=False``; the absence is reported through ``removed``.
    """
    found = find_manifests(package.name, repositories)
    latest = _latest_version(package, found)

    failed = package.failed
    deprecated = manifest_deprecated(package.name, repositories)
    removed = not found and not manifest_exists(package.name, repositories)

    info = []
    if failed:
        info.append("Install failed")
    if package.held:
        info.append("Held package")
    if deprecated:
        info.append("Deprecated")
    if removed:
        info.append("Manifest removed")

    return StatusRow(
        package_name=package.name,
        installed_version=package.version,
        latest_version=latest,
        outdated=is_outdated(package.version, latest),
        scope=package.scope,
        failed=failed,
        held=package.held,
        deprecated=deprecated,
        removed=removed,
        info=tuple(info),
    )


def check_status(
    installed_packages: Sequence[InstalledPackage],
    repositories: Sequence[RepositoryRef],
    on_progress: ProgressCallback | None = None,
    timeout: float | None = STATUS_TASK_TIMEOUT_SECONDS,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[StatusRow]:
    """
    Check every installed package against the repositories in parallel.

    Args:
        installed_packages: Records from the installed-package registry
        repositories: Repositories to look up manifests in
        on_progress: Called as (completed, total, package_name) once per
            finished lookup, on the calling thread
        timeout: Per-package lookup budget in seconds (None: unbounded)
        max_workers: Upper bound on concurrent lookups

    Returns:
        Status rows sorted case-insensitively by name. The tool's own
        package is skipped; lookups that fail or time out produce no row.
    """
    total = len(installed_packages)
    completed = 0

    def report(outcome: TaskOutcome) -> None:
        nonlocal completed
        completed += 1
        if not outcome.ok:
            logger.warning(
                "Status lookup for %s did not finish: %s",
                outcome.label, "timed out" if outcome.timed_out else outcome.error,
            )
        if on_progress is not None:
            on_progress(completed, total, outcome.label)

    tasks = [
        (package.name, lambda package=package: lookup_status(package, repositories))
        for package in installed_packages
    ]
    outcomes = run_fanout(tasks, timeout=timeout, max_workers=max_workers, on_complete=report)

    rows = [
        outcome.result for outcome in outcomes
        if outcome.ok and outcome.result.package_name != SELF_PACKAGE
    ]
    rows.sort(key=lambda row: row.package_name.lower())
    return rows


def check_scoop_status(
    self_location: Path,
    repositories: Sequence[RepositoryRef],
    local: bool = False,
    stale_after_days: int = DEFAULT_STALE_AFTER_DAYS,
    git_timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> ScoopStatus:
    """
    Check the tool's own checkout and all buckets concurrently.

    Args:
        self_location: Checkout of the tool itself
        repositories: Buckets across every scope
        local: Offline mode; report everything fresh without probing

    Returns:
        ScoopStatus combining both checks
    """
    if local:
        return ScoopStatus()

    tasks = [
        ("self", lambda: is_repository_stale(self_location, stale_after_days, git_timeout)),
        ("buckets", lambda: any_repository_stale(
            repositories, stale_after_days, git_timeout, max_workers,
        )),
    ]
    verdicts = {
        outcome.label: outcome.ok and outcome.result is True
        for outcome in run_fanout(tasks, max_workers=2)
    }
    return ScoopStatus(
        self_outdated=verdicts.get("self", False),
        any_bucket_outdated=verdicts.get("buckets", False),
    )

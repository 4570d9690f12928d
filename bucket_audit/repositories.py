"""
Manifest repository ("bucket") discovery across install scopes.

Each scope has an install root laid out as::

    <root>/apps/<package>/current    installed packages
    <root>/buckets/<name>/           one repository per directory
    <root>/buckets/<name>/bucket/    manifest directory, when present

Locating repositories is a pure directory listing; nothing here touches the
network or spawns processes.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from .common import is_windows
from .config import Config

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".json"
MANIFEST_SUBDIR = "bucket"
SELF_PACKAGE = "scoop"


class Scope(str, Enum):
    """Installation tier with its own independent repository set."""

    USER = "user"
    GLOBAL = "global"


ALL_SCOPES: tuple[Scope, ...] = (Scope.USER, Scope.GLOBAL)


@dataclass(frozen=True)
class ScopePaths:
    """Resolved directories for one install scope."""

    scope: Scope
    root: Path

    @property
    def apps(self) -> Path:
        return self.root / "apps"

    @property
    def buckets(self) -> Path:
        return self.root / "buckets"

    def app_current(self, package: str) -> Path:
        """Path of the ``current`` link for an installed package."""
        return self.apps / package / "current"


@dataclass(frozen=True)
class RepositoryRef:
    """
    One manifest repository.

    Attributes:
        name: Repository (bucket) name, the directory name under buckets/
        location: Directory holding the manifest files
        scope: Install scope the repository belongs to
    """
    name: str
    location: Path
    scope: Scope

    @property
    def git_root(self) -> Path:
        """Repository checkout root, the parent of a ``bucket/`` subdirectory."""
        if self.location.name == MANIFEST_SUBDIR:
            return self.location.parent
        return self.location

    def manifest_path(self, package: str) -> Path:
        return self.location / f"{package}{MANIFEST_SUFFIX}"


def default_root(scope: Scope) -> Path:
    """
    Derive an install root from the environment.

    User scope honours ``SCOOP`` and falls back to ``~/scoop``; global scope
    honours ``SCOOP_GLOBAL`` and falls back to the platform default.
    """
    if scope is Scope.USER:
        env_root = os.environ.get("SCOOP")
        if env_root:
            return Path(env_root)
        home = os.environ.get("USERPROFILE") or os.path.expanduser("~")
        return Path(home) / "scoop"

    env_root = os.environ.get("SCOOP_GLOBAL")
    if env_root:
        return Path(env_root)
    if is_windows():
        return Path(os.environ.get("ProgramData", "C:\\ProgramData")) / "scoop"
    return Path("/opt/scoop")


def resolve_scope_paths(scope: Scope, config: Config | None = None) -> ScopePaths:
    """
    Resolve the install root for a scope, preferring configured roots.
    """
    configured = None
    if config is not None:
        configured = config.roots.user if scope is Scope.USER else config.roots.global_
    root = Path(os.path.expanduser(configured)) if configured else default_root(scope)
    return ScopePaths(scope=scope, root=root)


def all_scope_paths(config: Config | None = None) -> list[ScopePaths]:
    """Resolved paths for every scope, user first."""
    return [resolve_scope_paths(scope, config) for scope in ALL_SCOPES]


def _has_manifests(directory: Path) -> bool:
    try:
        with os.scandir(directory) as entries:
            return any(
                entry.is_file() and entry.name.endswith(MANIFEST_SUFFIX)
                for entry in entries
            )
    except OSError:
        return False


def manifest_dir(bucket_root: Path) -> Path:
    """
    Pick the directory that holds a repository's manifests.

    The ``bucket/`` subdirectory wins when it contains at least one manifest;
    otherwise the repository root is used.
    """
    sub = bucket_root / MANIFEST_SUBDIR
    if sub.is_dir() and _has_manifests(sub):
        return sub
    return bucket_root


def repositories_in_scope(paths: ScopePaths) -> list[RepositoryRef]:
    """
    List the repositories under one scope's buckets directory.

    An unreadable or missing buckets directory yields an empty list.
    """
    try:
        with os.scandir(paths.buckets) as entries:
            names = [entry.name for entry in entries if entry.is_dir()]
    except OSError as e:
        logger.debug("Skipping buckets root %s: %s", paths.buckets, e)
        return []

    return [
        RepositoryRef(name=name, location=manifest_dir(paths.buckets / name), scope=paths.scope)
        for name in names
    ]


def find_repositories(
    scope_paths: Iterable[ScopePaths],
    name: str | None = None,
) -> list[RepositoryRef]:
    """
    Enumerate repositories across scopes.

    Args:
        scope_paths: Resolved scope directories, in the order to search them
        name: Optional repository name; matched case-insensitively and exactly

    Returns:
        RepositoryRef entries, possibly empty
    """
    refs: list[RepositoryRef] = []
    for paths in scope_paths:
        refs.extend(repositories_in_scope(paths))
    if name is not None:
        wanted = name.lower()
        refs = [ref for ref in refs if ref.name.lower() == wanted]
    return refs


def self_repository(config: Config | None = None) -> Path:
    """Location of the tool's own installation checkout (user scope)."""
    return resolve_scope_paths(Scope.USER, config).app_current(SELF_PACKAGE)

"""
Installed-package registry.

Reads the on-disk record of installed packages: each package lives in
``<root>/apps/<name>`` and its ``current`` link points at the active version
directory, whose basename is the installed version. ``install.json`` inside
that directory records the source bucket and hold state.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from .repositories import Scope, ScopePaths

logger = logging.getLogger(__name__)

INSTALL_INFO_FILE = "install.json"
HOLD_MARKER_FILE = "scoop-hold.txt"


@dataclass(frozen=True)
class InstalledPackage:
    """
    One installed package in one scope.

    Attributes:
        name: Package name (directory name under apps/)
        version: Installed version, None if ``current`` cannot be resolved
        scope: Install scope
        bucket: Source bucket recorded at install time, if known
        app_dir: Package directory under apps/
        current_path: Resolved target of the ``current`` link
        held: Whether updates are held for this package
    """
    name: str
    version: str | None
    scope: Scope
    bucket: str | None = None
    app_dir: Path | None = None
    current_path: Path | None = None
    held: bool = False

    @property
    def failed(self) -> bool:
        """True when the installation has no usable current version."""
        if self.current_path is None or not self.current_path.exists():
            return True
        return not self.version

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "version": self.version,
            "scope": self.scope.value,
            "bucket": self.bucket,
            "held": self.held,
        }


def read_current_target(app_dir: Path) -> tuple[Path | None, str | None]:
    """
    Resolve an app's ``current`` link.

    Returns:
        (resolved target, version) or (None, None) when it cannot be resolved
    """
    current = app_dir / "current"
    if not os.path.lexists(current):
        return None, None
    try:
        resolved = current.resolve(strict=True)
    except (OSError, RuntimeError):
        return None, None
    return resolved, resolved.name


def read_install_info(version_dir: Path | None) -> dict[str, Any]:
    """Read install.json from a version directory; {} when absent or malformed."""
    if version_dir is None:
        return {}
    try:
        with open(version_dir / INSTALL_INFO_FILE, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def _is_held(app_dir: Path, info: dict[str, Any]) -> bool:
    if info.get("hold") is True:
        return True
    return (app_dir / "current" / HOLD_MARKER_FILE).exists()


def load_installed_package(paths: ScopePaths, name: str) -> InstalledPackage:
    """Build the registry record for one package directory."""
    app_dir = paths.apps / name
    target, version = read_current_target(app_dir)
    info = read_install_info(target)
    bucket = info.get("bucket")
    return InstalledPackage(
        name=name,
        version=version,
        scope=paths.scope,
        bucket=str(bucket) if bucket else None,
        app_dir=app_dir,
        current_path=target,
        held=_is_held(app_dir, info),
    )


def list_installed(
    scope_paths: Iterable[ScopePaths],
    name_filter: str | None = None,
) -> list[InstalledPackage]:
    """
    List installed packages across scopes.

    Args:
        scope_paths: Resolved scope directories
        name_filter: Optional case-insensitive substring filter on names

    Returns:
        Packages sorted by name, user scope before global on ties
    """
    needle = name_filter.lower() if name_filter and name_filter.strip() else None
    packages: list[InstalledPackage] = []

    for paths in scope_paths:
        try:
            with os.scandir(paths.apps) as entries:
                names = [entry.name for entry in entries if entry.is_dir()]
        except OSError as e:
            logger.debug("Skipping apps directory %s: %s", paths.apps, e)
            continue

        for name in names:
            if needle and needle not in name.lower():
                continue
            packages.append(load_installed_package(paths, name))

    scope_order = {Scope.USER: 0, Scope.GLOBAL: 1}
    packages.sort(key=lambda p: (p.name.lower(), scope_order[p.scope]))
    return packages


def installed_names(packages: Iterable[InstalledPackage]) -> set[str]:
    """Lower-cased names of installed packages, for search pre-filtering."""
    return {package.name.lower() for package in packages}

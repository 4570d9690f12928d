"""
Manifest reading and field extraction.

A manifest is one JSON file named ``<package>.json`` inside a repository.
Reading never raises: a missing, unreadable or malformed file comes back as a
failed ``ManifestReadResult`` so callers can skip it and keep enumerating.
"""

from __future__ import annotations

import json
import logging
import ntpath
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence

from .repositories import MANIFEST_SUFFIX, RepositoryRef

logger = logging.getLogger(__name__)

EXECUTABLE_SUFFIX = ".exe"
DEPRECATED_MARKER = "deprecated"


def is_deprecated_path(path: Path) -> bool:
    """Manifests moved to a deprecated location carry the marker in their path."""
    return DEPRECATED_MARKER in str(path).lower()


@dataclass(frozen=True)
class ManifestReadResult:
    """
    Outcome of reading one manifest file.

    Attributes:
        path: File that was read
        data: Parsed mapping (empty on failure)
        error: Reason for failure, None on success
    """
    path: Path
    data: dict[str, Any]
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def version(self) -> str | None:
        value = self.data.get("version")
        return str(value) if value not in (None, "") else None

    @property
    def description(self) -> str | None:
        value = self.data.get("description")
        return str(value) if value not in (None, "") else None


@dataclass(frozen=True)
class ManifestRecord:
    """
    Fields of one manifest relevant to search and status.

    Attributes:
        package_name: Manifest file name without the .json suffix
        version: Declared version ("" when absent)
        description: Declared description, if any
        binaries: Binary aliases, in manifest order
    """
    package_name: str
    version: str
    description: str | None
    binaries: tuple[str, ...] = ()


@dataclass(frozen=True)
class FoundManifest:
    """A manifest located for a package in a specific repository."""

    repository: RepositoryRef
    path: Path
    record: ManifestRecord

    @property
    def deprecated(self) -> bool:
        return is_deprecated_path(self.path)


def read_manifest(path: Path) -> ManifestReadResult:
    """
    Parse one manifest file.

    Args:
        path: Manifest file path

    Returns:
        ManifestReadResult; ``ok`` is False for unreadable files, invalid
        JSON, or a top-level value that is not an object
    """
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        return ManifestReadResult(path=path, data={}, error=str(e))
    if not isinstance(data, dict):
        return ManifestReadResult(path=path, data={}, error="manifest is not a JSON object")
    return ManifestReadResult(path=path, data=data)


def _alias_from_path(target: str) -> str:
    # Manifests carry Windows-style relative paths
    name = ntpath.basename(target)
    if name.lower().endswith(EXECUTABLE_SUFFIX):
        name = name[: -len(EXECUTABLE_SUFFIX)]
    return name


def extract_binaries(bin_field: Any) -> list[str]:
    """
    Normalize a manifest ``bin`` field into a list of aliases.

    Supported shapes:
        "tool.exe"                        -> ["tool"]
        ["a.exe", ["b.exe", "bee"]]       -> ["a", "bee"]
        {"alias": "path/to/tool.exe"}     -> ["alias"]
    """
    if not bin_field:
        return []
    if isinstance(bin_field, str):
        return [_alias_from_path(bin_field)]
    if isinstance(bin_field, dict):
        return [str(alias) for alias in bin_field]
    if isinstance(bin_field, list):
        aliases = []
        for item in bin_field:
            if isinstance(item, str):
                aliases.append(_alias_from_path(item))
            elif isinstance(item, list) and len(item) >= 2:
                aliases.append(str(item[1]))
        return aliases
    return []


def to_record(package_name: str, result: ManifestReadResult) -> ManifestRecord:
    """Build a ManifestRecord from a successful read."""
    return ManifestRecord(
        package_name=package_name,
        version=result.version or "",
        description=result.description,
        binaries=tuple(extract_binaries(result.data.get("bin"))),
    )


def iter_manifest_files(directory: Path) -> Iterator[tuple[str, Path]]:
    """
    Yield ``(package_name, path)`` for each manifest file in a directory.

    Raises:
        OSError: If the directory cannot be listed
    """
    with os.scandir(directory) as entries:
        for entry in entries:
            if not entry.name.endswith(MANIFEST_SUFFIX):
                continue
            try:
                if not entry.is_file():
                    continue
            except OSError:
                continue
            yield entry.name[: -len(MANIFEST_SUFFIX)], Path(entry.path)


def find_manifests(package: str, repositories: Sequence[RepositoryRef]) -> list[FoundManifest]:
    """
    Collect every readable manifest for a package across repositories.

    Results follow repository order. Malformed manifests are skipped.
    """
    found = []
    for repo in repositories:
        path = repo.manifest_path(package)
        if not path.is_file():
            continue
        result = read_manifest(path)
        if not result.ok:
            logger.debug("Skipping malformed manifest %s: %s", path, result.error)
            continue
        found.append(FoundManifest(repository=repo, path=path, record=to_record(package, result)))
    return found


def manifest_paths(package: str, repositories: Sequence[RepositoryRef]) -> list[Path]:
    """Manifest files for a package across repositories, readable or not."""
    return [
        path for path in (repo.manifest_path(package) for repo in repositories)
        if path.is_file()
    ]


def manifest_exists(package: str, repositories: Sequence[RepositoryRef]) -> bool:
    """Check whether any repository has a manifest file for a package, readable or not."""
    return bool(manifest_paths(package, repositories))


def manifest_deprecated(package: str, repositories: Sequence[RepositoryRef]) -> bool:
    """Check whether any manifest file for a package, readable or not, is deprecated."""
    return any(is_deprecated_path(path) for path in manifest_paths(package, repositories))

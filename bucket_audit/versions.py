"""
Version ordering for manifest and installed versions.

Versions are reduced to a fixed 4-component integer tuple and compared
lexicographically. The scheme is lossy on purpose: non-numeric segments
(``beta``, ``rc``) collapse to 0, so ``1.2.0-beta`` and ``1.2.0`` are equal.
"""

from __future__ import annotations

import re
from typing import Iterable

NormalizedVersion = tuple[int, int, int, int]

VERSION_COMPONENTS = 4

_SEPARATORS = re.compile(r"[.\-]")
_NON_DIGITS = re.compile(r"\D")


def normalize(raw: str | None) -> NormalizedVersion:
    """
    Parse a free-form version string into a comparable 4-tuple.

    Args:
        raw: Version string (e.g. "v1.2", "2.0.9", "1.2.0-beta")

    Returns:
        Tuple of exactly four non-negative integers
    """
    cleaned = (raw or "").strip()
    if cleaned[:1] in ("v", "V"):
        cleaned = cleaned[1:]
    cleaned = cleaned.lower().strip()

    parts: list[int] = []
    for segment in _SEPARATORS.split(cleaned):
        digits = _NON_DIGITS.sub("", segment)
        parts.append(int(digits) if digits else 0)

    parts = parts[:VERSION_COMPONENTS]
    while len(parts) < VERSION_COMPONENTS:
        parts.append(0)
    return (parts[0], parts[1], parts[2], parts[3])


def compare(a: NormalizedVersion, b: NormalizedVersion) -> int:
    """
    Compare two normalized versions.

    Returns:
        -1 if a < b, 0 if a == b, 1 if a > b
    """
    for left, right in zip(a, b):
        if left > right:
            return 1
        if left < right:
            return -1
    return 0


def compare_versions(v1: str | None, v2: str | None) -> int:
    """Compare two raw version strings through their normalized form."""
    return compare(normalize(v1), normalize(v2))


def latest_of(versions: Iterable[str | None]) -> str | None:
    """
    Pick the highest version from raw strings in discovery order.

    Ties keep the first string encountered. Empty and missing entries are
    ignored.

    Returns:
        The raw string of the highest version, or None if there is none
    """
    best: str | None = None
    best_key: NormalizedVersion | None = None
    for raw in versions:
        if not raw:
            continue
        key = normalize(raw)
        if best_key is None or compare(key, best_key) > 0:
            best, best_key = raw, key
    return best


def is_outdated(installed: str | None, latest: str | None) -> bool:
    """
    Decide whether an installed version is behind the latest manifest.

    Args:
        installed: Installed version string (None if unknown)
        latest: Best available manifest version (None if no manifest)

    Returns:
        True only when both are present, differ textually, and latest
        normalizes strictly higher than installed
    """
    if not installed or not latest:
        return False
    if installed == latest:
        return False
    return compare(normalize(latest), normalize(installed)) > 0

"""
Git probes used by the staleness engine.

Every probe is independently failable: a missing git binary, a timeout, a
non-zero exit or unparsable output turns into ``False``/``None`` and is
logged, never raised.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .config import DEFAULT_GIT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def _run_git(repo: Path, args: list[str], timeout: float) -> str | None:
    """
    Run ``git -C <repo> <args>``.

    Returns:
        Stripped stdout on success, None on any failure
    """
    try:
        result = subprocess.run(
            ["git", "-C", str(repo), *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git %s failed in %s: %s", " ".join(args), repo, e)
        return None

    if result.returncode != 0:
        logger.debug(
            "git %s exited %d in %s: %s",
            " ".join(args), result.returncode, repo, result.stderr.strip(),
        )
        return None
    return result.stdout.strip()


def is_git_repo(repo: Path) -> bool:
    """Check whether a directory carries git metadata."""
    return (repo / ".git").exists()


def fetch(repo: Path, remote: str = "origin", timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS) -> bool:
    """Quietly fetch a remote. Returns True on success."""
    return _run_git(repo, ["fetch", "-q", remote], timeout) is not None


def current_branch(repo: Path, timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS) -> str | None:
    """Name of the checked-out branch; None when detached or on failure."""
    branch = _run_git(repo, ["branch", "--show-current"], timeout)
    return branch or None


def commit_count(
    repo: Path,
    from_ref: str,
    to_ref: str,
    timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS,
) -> int | None:
    """
    Count commits reachable from ``to_ref`` but not from ``from_ref``.

    Returns:
        Commit count, or None if the refs cannot be resolved
    """
    output = _run_git(repo, ["rev-list", "--count", f"{from_ref}..{to_ref}"], timeout)
    if output is None:
        return None
    try:
        return int(output)
    except ValueError:
        logger.debug("Unexpected rev-list output in %s: %r", repo, output)
        return None

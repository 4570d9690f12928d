"""
bucket-audit - Parallel manifest search and staleness reporting for package buckets.

Core Modules:
- Version ordering: normalization and comparison of free-form versions
- Repository discovery: buckets per install scope
- Search: fan-out manifest scan with per-task timeouts
- Status: bucket freshness race and per-package outdated checks
- Foundation: config, logging, installed-package registry, git probes
"""

__version__ = "1.0.0"

VERSION = __version__

# Version ordering
from .versions import normalize, compare, compare_versions, latest_of, is_outdated

# Repository discovery
from .repositories import (
    Scope,
    ScopePaths,
    RepositoryRef,
    resolve_scope_paths,
    all_scope_paths,
    find_repositories,
    self_repository,
)
from .manifests import ManifestRecord, ManifestReadResult, read_manifest, extract_binaries, find_manifests
from .installed import InstalledPackage, list_installed

# Engines
from .fanout import TaskOutcome, iter_fanout, run_fanout, race_for_true
# search() itself is reached as bucket_audit.search.search; re-exporting it would shadow the module
from .search import SearchHit, SearchOptions, scan_repository, mark_installed
from .status import (
    StatusRow,
    ScoopStatus,
    is_repository_stale,
    any_stale,
    any_repository_stale,
    lookup_status,
    check_status,
    check_scoop_status,
)

# Foundation
from .config import Config, Preferences, Roots, load_config, load_config_file, validate_config
from .logging_config import setup_logging, get_logger

__all__ = [
    "__version__",
    "VERSION",
    # Version ordering
    "normalize",
    "compare",
    "compare_versions",
    "latest_of",
    "is_outdated",
    # Repository discovery
    "Scope",
    "ScopePaths",
    "RepositoryRef",
    "resolve_scope_paths",
    "all_scope_paths",
    "find_repositories",
    "self_repository",
    "ManifestRecord",
    "ManifestReadResult",
    "read_manifest",
    "extract_binaries",
    "find_manifests",
    "InstalledPackage",
    "list_installed",
    # Engines
    "TaskOutcome",
    "iter_fanout",
    "run_fanout",
    "race_for_true",
    "SearchHit",
    "SearchOptions",
    "scan_repository",
    "mark_installed",
    "StatusRow",
    "ScoopStatus",
    "is_repository_stale",
    "any_stale",
    "any_repository_stale",
    "lookup_status",
    "check_status",
    "check_scoop_status",
    # Foundation
    "Config",
    "Preferences",
    "Roots",
    "load_config",
    "load_config_file",
    "validate_config",
    "setup_logging",
    "get_logger",
]

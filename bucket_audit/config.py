"""
Configuration file parsing and management.

Supports YAML configuration files with JSON fallback.
Merges configurations from multiple sources (custom → project → user → system → defaults).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from .common import vlog


CONFIG_LOCATIONS = [
    ".bucket-audit.yml",
    ".bucket-audit.yaml",
    os.path.expanduser("~/.config/bucket-audit/config.yml"),
    os.path.expanduser("~/.config/bucket-audit/config.yaml"),
    "/etc/bucket-audit/config.yml",
    "/etc/bucket-audit/config.yaml",
]

DEFAULT_SEARCH_TIMEOUT_SECONDS = 60
DEFAULT_GIT_TIMEOUT_SECONDS = 30
DEFAULT_MAX_WORKERS = 16
DEFAULT_RESULT_LIMIT = 100
DEFAULT_STALE_AFTER_DAYS = 30


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not low <= value <= high:
        raise ValueError(f"Invalid {name}: {value}. Must be between {low} and {high}")


@dataclass(frozen=True)
class Roots:
    """
    Install roots per scope.

    Attributes:
        user: Per-user install root (None: derive from SCOOP or ~/scoop)
        global_: System-wide install root (None: derive from SCOOP_GLOBAL)
    """
    user: str | None = None
    global_: str | None = None

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Roots:
        """Create Roots from dictionary."""
        return Roots(user=data.get("user"), global_=data.get("global"))


@dataclass(frozen=True)
class Preferences:
    """
    Tunables for the search and status engines.

    Attributes:
        search_timeout_seconds: Budget for one repository scan task
        git_timeout_seconds: Budget for one git subprocess call
        max_workers: Upper bound on concurrently running tasks
        result_limit: Maximum number of search hits returned
        stale_after_days: Age after which a non-git repository counts as stale
        local: Skip all network probes (offline mode); None when not configured
    """
    search_timeout_seconds: int = DEFAULT_SEARCH_TIMEOUT_SECONDS
    git_timeout_seconds: int = DEFAULT_GIT_TIMEOUT_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS
    result_limit: int = DEFAULT_RESULT_LIMIT
    stale_after_days: int = DEFAULT_STALE_AFTER_DAYS
    local: bool | None = None

    def __post_init__(self):
        """Validate preferences after initialization."""
        _check_range("search_timeout_seconds", self.search_timeout_seconds, 1, 600)
        _check_range("git_timeout_seconds", self.git_timeout_seconds, 1, 300)
        _check_range("max_workers", self.max_workers, 1, 32)
        _check_range("result_limit", self.result_limit, 1, 1000)
        _check_range("stale_after_days", self.stale_after_days, 1, 365)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            search_timeout_seconds=data.get("search_timeout_seconds", DEFAULT_SEARCH_TIMEOUT_SECONDS),
            git_timeout_seconds=data.get("git_timeout_seconds", DEFAULT_GIT_TIMEOUT_SECONDS),
            max_workers=data.get("max_workers", DEFAULT_MAX_WORKERS),
            result_limit=data.get("result_limit", DEFAULT_RESULT_LIMIT),
            stale_after_days=data.get("stale_after_days", DEFAULT_STALE_AFTER_DAYS),
            local=None if data.get("local") is None else bool(data["local"]),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for bucket-audit.

    Attributes:
        version: Config schema version
        roots: Install roots per scope
        preferences: Engine tunables
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    roots: Roots = field(default_factory=Roots)
    preferences: Preferences = field(default_factory=Preferences)
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        return Config(
            version=data.get("version", 1),
            roots=Roots.from_dict(data.get("roots") or {}),
            preferences=Preferences.from_dict(data.get("preferences") or {}),
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        A preference only overrides the other config when it differs from
        the built-in default.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        defaults = Preferences()
        mine, theirs = self.preferences, other.preferences

        def pick(name: str):
            value = getattr(mine, name)
            return value if value != getattr(defaults, name) else getattr(theirs, name)

        merged_preferences = Preferences(
            search_timeout_seconds=pick("search_timeout_seconds"),
            git_timeout_seconds=pick("git_timeout_seconds"),
            max_workers=pick("max_workers"),
            result_limit=pick("result_limit"),
            stale_after_days=pick("stale_after_days"),
            local=theirs.local if mine.local is None else mine.local,
        )
        merged_roots = Roots(
            user=self.roots.user or other.roots.user,
            global_=self.roots.global_ or other.roots.global_,
        )
        return Config(
            version=self.version,
            roots=merged_roots,
            preferences=merged_preferences,
            source=self.source or other.source,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load a YAML configuration file.

    Returns:
        Parsed dictionary ({} for non-mapping documents), or None if the
        file cannot be read or parsed
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load a JSON configuration file.

    Returns:
        Parsed dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Files ending in ``.json`` are read as JSON; everything else as YAML,
    falling back to a sibling ``.json`` file when the YAML is unreadable.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)
        if data is None:
            json_path = os.path.splitext(file_path)[0] + ".json"
            if os.path.exists(json_path):
                vlog(f"YAML unreadable, trying JSON: {json_path}", verbose)
                data = _load_json(json_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
    except (ValueError, TypeError, AttributeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None

    vlog(f"Loaded config successfully: {file_path}", verbose)
    return config


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (if provided)
    2. Project .bucket-audit.yml
    3. User ~/.config/bucket-audit/config.yml
    4. System /etc/bucket-audit/config.yml
    5. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging

    Returns:
        Merged Config object (defaults if no config found)

    Raises:
        ValueError: If custom_path is provided but cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        return Config()

    merged = configs[0]
    for config in configs[1:]:
        merged = merged.merge_with(config)

    vlog(f"Merged {len(configs)} config files", verbose)
    return merged


def validate_config(config: Config) -> list[str]:
    """
    Check a configuration for suspicious but legal settings.

    Returns:
        List of warning messages (empty if nothing stands out)
    """
    warnings = []
    prefs = config.preferences

    if prefs.git_timeout_seconds > prefs.search_timeout_seconds:
        warnings.append(
            f"git_timeout_seconds ({prefs.git_timeout_seconds}) exceeds "
            f"search_timeout_seconds ({prefs.search_timeout_seconds})"
        )
    for label, root in (("user", config.roots.user), ("global", config.roots.global_)):
        if root and not os.path.isdir(os.path.expanduser(root)):
            warnings.append(f"Configured {label} root does not exist: {root}")
    if config.roots.user and config.roots.user == config.roots.global_:
        warnings.append("User and global roots point to the same directory")

    return warnings

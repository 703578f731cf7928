"""
Configuration and path management.

Provides site root detection, standard paths, and the runtime Settings
consumed by the sync engine, caches and API. Uses a .folio/ directory for
folio-specific data (project database, logs, backups, config).

Resolution order for site root:
  1. FOLIO_SITE_ROOT environment variable (highest priority)
  2. Walk up from cwd looking for .folio/ directory
  3. Global config file (~/.config/folio/config.yaml) site_root key

Secrets are never read from config files:
  GITHUB_TOKEN           optional, raises the GitHub rate limit
  GITHUB_WEBHOOK_SECRET  shared secret for webhook signature checks
  FOLIO_ADMIN_TOKEN      bearer token accepted by admin endpoints
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from folio.core.backup import DEFAULT_KEEP_COUNT, DEFAULT_KEEP_DAYS, DEFAULT_MAX_COUNT, BackupPolicy

# Hardcoded TTL defaults (seconds)
PROJECT_CACHE_TTL = 5 * 60
GITHUB_CACHE_TTL = 10 * 60
ERROR_CACHE_TTL = 60

DEFAULT_COMMIT_REPO_LIMIT = 20
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_FEATURED_LIMIT = 6


@dataclass(frozen=True)
class SitePaths:
    """Standard paths for folio data."""

    root: Path
    folio_dir: Path

    # Data files (in .folio/)
    projects_db: Path
    sync_log: Path
    activity_log: Path
    config_file: Path

    # Backup directories (in .folio/)
    projects_backups: Path


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the sync engine, caches and API."""

    paths: SitePaths
    github_username: str | None = None
    github_token: str | None = None
    webhook_secret: str | None = None
    admin_token: str | None = None
    include_repos: tuple[str, ...] = ()
    exclude_repos: tuple[str, ...] = ()
    commit_repo_limit: int = DEFAULT_COMMIT_REPO_LIMIT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    project_cache_ttl: int = PROJECT_CACHE_TTL
    github_cache_ttl: int = GITHUB_CACHE_TTL
    error_cache_ttl: int = ERROR_CACHE_TTL
    featured_limit: int = DEFAULT_FEATURED_LIMIT
    sync_interval_minutes: float = 0
    backup_policy: BackupPolicy = field(default_factory=BackupPolicy)
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


def get_global_config_path() -> Path:
    """Return the path to the global folio config file.

    Respects XDG_CONFIG_HOME if set, otherwise defaults to ~/.config/folio/config.yaml.

    Returns:
        Path to global config file (may not exist).
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "folio" / "config.yaml"


def load_global_config() -> dict:
    """Load the global folio configuration.

    Returns:
        Configuration dict, or empty dict if file is missing or invalid.
    """
    config_path = get_global_config_path()
    if not config_path.is_file():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return data
        return {}
    except (OSError, yaml.YAMLError):
        return {}


def _walk_up_for_folio(start_path: Path) -> Path | None:
    """Walk up directory tree looking for .folio/ directory."""
    current = start_path.resolve()
    while current != current.parent:
        if (current / ".folio").is_dir():
            return current
        current = current.parent
    return None


def find_folio_root(start_path: Path | None = None) -> Path:
    """Find site root using 3-tier resolution.

    Args:
        start_path: Starting path for .folio/ directory walk (defaults to cwd)

    Returns:
        Path to site root

    Raises:
        FileNotFoundError: If .folio/ directory not found by any method
    """
    env_root = os.environ.get("FOLIO_SITE_ROOT")
    if env_root:
        env_path = Path(env_root).resolve()
        if (env_path / ".folio").is_dir():
            return env_path
        raise FileNotFoundError(
            f"FOLIO_SITE_ROOT={env_root} does not contain a .folio/ directory."
        )

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_folio(Path(start_path))
    if result is not None:
        return result

    global_config = load_global_config()
    site_root_str = global_config.get("site_root")
    if site_root_str:
        global_path = Path(site_root_str).expanduser().resolve()
        if (global_path / ".folio").is_dir():
            return global_path
        raise FileNotFoundError(
            f"Global config site_root={site_root_str} does not contain a .folio/ directory."
        )

    raise FileNotFoundError(
        f"Could not find .folio/ directory starting from {start_path}. "
        f"Run 'folio init' to initialize, set FOLIO_SITE_ROOT, or configure "
        f"site_root in {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_site_root() -> Path:
    """Get the cached site root path."""
    return find_folio_root()


def get_paths(site_root: Path | None = None) -> SitePaths:
    """Get all standard paths for the site.

    Args:
        site_root: Site root path (uses cached default if not provided)

    Returns:
        SitePaths dataclass with all paths
    """
    if site_root is None:
        site_root = get_site_root()

    site_root = Path(site_root)
    folio_dir = site_root / ".folio"

    return SitePaths(
        root=site_root,
        folio_dir=folio_dir,
        projects_db=folio_dir / "projects_db.json",
        sync_log=folio_dir / "sync_log.json",
        activity_log=folio_dir / "admin_activity.json",
        config_file=folio_dir / "config.yaml",
        projects_backups=folio_dir / "backups" / "projects",
    )


def load_site_config(config_file: Path) -> dict[str, Any]:
    """Load a site config file (YAML, or JSON for backwards compatibility)."""
    if not config_file.exists():
        return {}

    content = config_file.read_text(encoding="utf-8")
    if not content.strip():
        return {}

    if content.strip().startswith("{"):
        result: dict[str, Any] = json.loads(content)
        return result
    loaded = yaml.safe_load(content)
    if isinstance(loaded, dict):
        return loaded
    return {}


def lookup(config: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Look up a dotted key (``github.username``) in a nested mapping."""
    current: Any = config
    for part in key.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return default
    return current


def _as_tuple(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(v.strip() for v in value.split(",") if v.strip())
    return tuple(str(v) for v in value)


def load_settings(
    site_root: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Build Settings from .folio/config.yaml and the environment.

    Args:
        site_root: Site root (resolved with find_folio_root if not provided)
        env: Environment mapping (defaults to os.environ)

    Returns:
        Settings instance

    Raises:
        FileNotFoundError: If no site root can be resolved
    """
    if env is None:
        env = os.environ

    paths = get_paths(site_root)
    config = load_site_config(paths.config_file)

    keep_count = int(lookup(config, "backup.keep_count", DEFAULT_KEEP_COUNT))
    # The ceiling never undercuts the guaranteed minimum
    max_count = max(int(lookup(config, "backup.max_count", DEFAULT_MAX_COUNT)), keep_count)

    return Settings(
        paths=paths,
        github_username=env.get("GITHUB_USERNAME") or lookup(config, "github.username"),
        github_token=env.get("GITHUB_TOKEN") or None,
        webhook_secret=env.get("GITHUB_WEBHOOK_SECRET") or None,
        admin_token=env.get("FOLIO_ADMIN_TOKEN") or None,
        include_repos=_as_tuple(lookup(config, "github.include_repos")),
        exclude_repos=_as_tuple(lookup(config, "github.exclude_repos")),
        commit_repo_limit=int(lookup(config, "github.commit_repo_limit", DEFAULT_COMMIT_REPO_LIMIT)),
        request_timeout=float(lookup(config, "github.request_timeout", DEFAULT_REQUEST_TIMEOUT)),
        project_cache_ttl=int(lookup(config, "cache.project_ttl", PROJECT_CACHE_TTL)),
        github_cache_ttl=int(lookup(config, "cache.github_ttl", GITHUB_CACHE_TTL)),
        error_cache_ttl=int(lookup(config, "cache.error_ttl", ERROR_CACHE_TTL)),
        featured_limit=int(lookup(config, "projects.featured_limit", DEFAULT_FEATURED_LIMIT)),
        sync_interval_minutes=float(lookup(config, "sync.interval_minutes", 0) or 0),
        backup_policy=BackupPolicy(
            keep_count=keep_count,
            keep_days=int(lookup(config, "backup.keep_days", DEFAULT_KEEP_DAYS)),
            max_count=max_count,
        ),
        extra=config,
    )

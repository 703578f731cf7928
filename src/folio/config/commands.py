"""
Configuration management CLI commands.

Manages site settings stored in .folio/config.yaml. Secrets (GitHub token,
webhook secret, admin token) are read from the environment only and are
never written here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table

from folio.core.backup import DEFAULT_KEEP_COUNT, DEFAULT_KEEP_DAYS, DEFAULT_MAX_COUNT
from folio.core.config import (
    DEFAULT_COMMIT_REPO_LIMIT,
    DEFAULT_FEATURED_LIMIT,
    DEFAULT_REQUEST_TIMEOUT,
    ERROR_CACHE_TTL,
    GITHUB_CACHE_TTL,
    PROJECT_CACHE_TTL,
    get_paths,
    load_site_config,
    lookup,
)

console = Console()


def get_config_path() -> Path:
    """Get path to config file."""
    return get_paths().config_file


def load_config() -> dict[str, Any]:
    return load_site_config(get_config_path())


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to file (YAML format)."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.dump(config, default_flow_style=False, sort_keys=False))


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key."""
    return lookup(load_config(), key, default)


def set_config_value(key: str, value: Any) -> None:
    """Set a configuration value by dotted key."""
    config = load_config()
    parts = key.split(".")

    current = config
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    current[parts[-1]] = value
    save_config(config)


CONFIG_SCHEMA: dict[str, dict[str, Any]] = {
    "github.username": {
        "default": None,
        "type": str,
        "description": "GitHub account synced into projects (also the webhook allow-list)",
    },
    "github.include_repos": {
        "default": [],
        "type": list,
        "description": "Only sync these repositories (comma-separated)",
    },
    "github.exclude_repos": {
        "default": [],
        "type": list,
        "description": "Never sync these repositories (comma-separated)",
    },
    "github.commit_repo_limit": {
        "default": DEFAULT_COMMIT_REPO_LIMIT,
        "type": int,
        "description": "Repositories counted for commit totals",
    },
    "github.request_timeout": {
        "default": DEFAULT_REQUEST_TIMEOUT,
        "type": float,
        "description": "GitHub API timeout in seconds",
    },
    "cache.project_ttl": {
        "default": PROJECT_CACHE_TTL,
        "type": int,
        "description": "Project listing cache lifetime in seconds",
    },
    "cache.github_ttl": {
        "default": GITHUB_CACHE_TTL,
        "type": int,
        "description": "GitHub API response cache lifetime in seconds",
    },
    "cache.error_ttl": {
        "default": ERROR_CACHE_TTL,
        "type": int,
        "description": "Cache lifetime advertised on error responses",
    },
    "projects.featured_limit": {
        "default": DEFAULT_FEATURED_LIMIT,
        "type": int,
        "description": "Maximum featured projects served",
    },
    "sync.interval_minutes": {
        "default": 0,
        "type": float,
        "description": "Background sync interval (0 disables)",
    },
    "backup.keep_days": {
        "default": DEFAULT_KEEP_DAYS,
        "type": int,
        "description": "Maximum age of backups in days",
    },
    "backup.keep_count": {
        "default": DEFAULT_KEEP_COUNT,
        "type": int,
        "description": "Minimum number of backups to keep",
    },
    "backup.max_count": {
        "default": DEFAULT_MAX_COUNT,
        "type": int,
        "description": "Maximum number of backups kept regardless of age",
    },
}


def convert_value(key: str, value: str) -> Any:
    """Convert a CLI string to the type CONFIG_SCHEMA declares for key.

    Raises:
        ValueError: If the value does not parse
    """
    expected = CONFIG_SCHEMA[key]["type"]
    if expected is int:
        return int(value)
    if expected is float:
        return float(value)
    if expected is bool:
        return value.lower() in ("true", "1", "yes")
    if expected is list:
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


def _unknown_key(key: str) -> None:
    console.print(f"[red]Unknown setting: {key}[/red]")
    console.print("\nAvailable settings:")
    for k in CONFIG_SCHEMA:
        console.print(f"  - {k}")


@click.group()
def config():
    """Manage folio configuration.

    Settings are stored in .folio/config.yaml.
    """
    pass


@config.command(name="show")
@click.option("--all", "show_all", is_flag=True, help="Show all settings including defaults")
def show_cmd(show_all: bool):
    """Show current configuration.

    Without --all, only shows settings that differ from defaults.
    """
    current_config = load_config()
    config_path = get_config_path()

    if not current_config and not show_all:
        console.print("[dim]No custom configuration set. Using defaults.[/dim]")
        console.print(f"[dim]Config file: {config_path}[/dim]")
        console.print("\n[dim]Use 'folio config show --all' to see all settings.[/dim]")
        return

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value", style="green")
    table.add_column("Default", style="dim")
    table.add_column("Description", style="dim")

    for key, schema in CONFIG_SCHEMA.items():
        current = lookup(current_config, key)
        default = schema["default"]
        is_custom = current is not None and current != default

        if show_all or is_custom:
            display_value = str(current) if current is not None else f"[dim]{default}[/dim]"
            table.add_row(key, display_value, str(default), schema["description"])

    console.print(table)
    console.print(f"\n[dim]Config file: {config_path}[/dim]")


@config.command(name="get")
@click.argument("key")
def get_cmd(key: str):
    """Get a configuration value.

    Examples:
        folio config get github.username
        folio config get cache.project_ttl
    """
    if key not in CONFIG_SCHEMA:
        _unknown_key(key)
        return

    value = get_config_value(key)
    if value is None:
        console.print(f"{key} = {CONFIG_SCHEMA[key]['default']} [dim](default)[/dim]")
    else:
        console.print(f"{key} = {value}")


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_cmd(key: str, value: str):
    """Set a configuration value.

    Examples:
        folio config set github.username octocat
        folio config set github.exclude_repos dotfiles,scratch
        folio config set sync.interval_minutes 30
    """
    if key not in CONFIG_SCHEMA:
        _unknown_key(key)
        return

    try:
        typed_value = convert_value(key, value)
    except ValueError:
        console.print(f"[red]Invalid value type. Expected {CONFIG_SCHEMA[key]['type'].__name__}[/red]")
        return

    set_config_value(key, typed_value)
    console.print(f"[green]Set {key} = {typed_value}[/green]")


@config.command(name="path")
def path_cmd():
    """Show path to config file."""
    console.print(str(get_config_path()))

"""CLI commands for portfolio projects and GitHub sync."""

from __future__ import annotations

import json
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


def _truncate(text: str, max_len: int) -> str:
    """Truncate text with ellipsis if it exceeds max_len."""
    if len(text) > max_len:
        return text[:max_len] + "..."
    return text


def _load_container() -> Any:
    """Build the service container for the current site."""
    from folio.api.deps import build_container
    from folio.core.config import load_settings

    return build_container(load_settings())


def _print_views(views: list[Any], title: str, as_json: bool) -> None:
    if as_json:
        console.print(json.dumps([v.to_dict() for v in views], indent=2))
        return

    if not views:
        console.print("[yellow]No projects found[/yellow]")
        return

    table = Table(title=f"{title} ({len(views)})")
    table.add_column("Name", style="cyan")
    table.add_column("Title")
    table.add_column("Category", style="green")
    table.add_column("Stars", style="yellow")
    table.add_column("Order", style="blue")
    table.add_column("Source")

    for view in views:
        flags = "manual" if view.manual else "github"
        if view.featured:
            flags += " *"
        table.add_row(
            view.id,
            _truncate(view.title, 40),
            view.category or "",
            str(view.stars),
            "" if view.order is None else str(view.order),
            flags,
        )

    console.print(table)


@click.group(name="projects")
def projects() -> None:
    """Manage portfolio projects.

    Sync repositories from GitHub and inspect the project database.
    """
    pass


@projects.command()
def sync() -> None:
    """Sync all repositories from GitHub into the project database.

    Manual projects are never touched; GitHub projects keep their
    overrides, featured flag and display order.
    """
    container = _load_container()
    if not container.settings.github_username:
        console.print("[red]No GitHub user configured. Set github.username or GITHUB_USERNAME.[/red]")
        raise SystemExit(1)

    console.print(f"[cyan]Syncing repositories for {container.settings.github_username}...[/cyan]")
    result = container.sync_service.sync_all_projects(triggered_by="cli")

    console.print(f"  [green]Created:[/green] {result.created}")
    console.print(f"  [green]Updated:[/green] {result.updated}")
    if result.skipped:
        console.print(f"  [dim]Skipped (manual):[/dim] {', '.join(result.skipped)}")
    for error in result.errors:
        console.print(f"  [red]{error}[/red]")

    if result.success:
        console.print("[bold green]Sync complete![/bold green]")
    else:
        console.print(f"[bold yellow]Sync completed with {len(result.errors)} error(s)[/bold yellow]")
        raise SystemExit(1)


@projects.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_projects(as_json: bool) -> None:
    """List active projects as the public API serves them."""
    container = _load_container()
    _print_views(container.projects.get_all_projects(), "Projects", as_json)


@projects.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def featured(as_json: bool) -> None:
    """List featured projects in display order."""
    container = _load_container()
    _print_views(container.projects.get_featured_projects(), "Featured projects", as_json)


@projects.command()
@click.option("-n", "--limit", default=10, show_default=True, help="Number of runs to show")
def history(limit: int) -> None:
    """Show recent sync runs."""
    container = _load_container()
    entries = container.sync_log.recent(limit=limit)

    if not entries:
        console.print("[yellow]No sync runs recorded[/yellow]")
        return

    table = Table(title="Sync history")
    table.add_column("When", style="dim")
    table.add_column("Trigger", style="cyan")
    table.add_column("Result")
    table.add_column("Created", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Errors", justify="right", style="red")

    for entry in entries:
        ok = "[green]ok[/green]" if entry.get("success") else "[red]failed[/red]"
        table.add_row(
            str(entry.get("timestamp", ""))[:19],
            str(entry.get("triggered_by", "")),
            ok,
            str(entry.get("created", 0)),
            str(entry.get("updated", 0)),
            str(len(entry.get("errors") or [])),
        )

    console.print(table)


@projects.command()
def stats() -> None:
    """Show project database statistics."""
    from folio.projects.models import ProjectSource

    container = _load_container()
    db = container.db
    by_status = db.count_by_status()
    manual = len(db.find_many(source=ProjectSource.MANUAL))
    github = len(db.find_many(source=ProjectSource.GITHUB))
    featured_count = len(db.find_many(featured=True))
    last_ok = container.sync_log.last(success=True)

    content = f"""[cyan]Total projects:[/cyan] {len(db)}
[cyan]GitHub:[/cyan] {github}
[cyan]Manual:[/cyan] {manual}
[cyan]Featured:[/cyan] {featured_count}
[cyan]By status:[/cyan] {', '.join(f'{k}={v}' for k, v in sorted(by_status.items())) or 'none'}
[cyan]Last successful sync:[/cyan] {last_ok.get('timestamp') if last_ok else 'never'}"""

    console.print(Panel(content, title="Project Database Stats"))


@projects.command(name="rate-limit")
def rate_limit() -> None:
    """Check GitHub API rate limit status."""
    from datetime import datetime

    container = _load_container()
    client = container.github
    data = client.get_rate_limit()
    if data is None:
        console.print("[red]Could not fetch rate limit[/red]")
        raise SystemExit(1)

    core = data.get("resources", {}).get("core", data.get("rate", {}))
    reset = core.get("reset")
    reset_at = datetime.fromtimestamp(reset).strftime("%H:%M:%S") if reset else "unknown"

    console.print(f"[cyan]Authenticated:[/cyan] {'yes' if client.token else 'no'}")
    console.print(f"[cyan]Remaining:[/cyan] {core.get('remaining', '?')}/{core.get('limit', '?')}")
    console.print(f"[cyan]Resets at:[/cyan] {reset_at}")

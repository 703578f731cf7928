"""
Main CLI dispatcher for folio.

Usage:
    folio init                           # Initialize .folio/ directory
    folio serve                          # Run the HTTP API
    folio projects [sync|list|featured|history|stats|rate-limit]
    folio config [show|get|set|path]
"""

import logging
from pathlib import Path

import click
from rich.console import Console

from folio import __version__

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="folio")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Portfolio project sync and API tools.

    Sync GitHub repositories into the project database and serve them
    through a cached HTTP API.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@main.command()
@click.option("--force", "-f", is_flag=True, help="Reinitialize an existing .folio/ directory")
def init(force: bool) -> None:
    """Initialize .folio/ directory structure in the current directory."""
    site_root = Path.cwd()
    folio_dir = site_root / ".folio"

    if folio_dir.exists() and not force:
        console.print(f"[yellow].folio/ directory already exists at {folio_dir}[/yellow]")
        console.print("[dim]Use --force to reinitialize.[/dim]")
        return

    console.print(f"[cyan]Initializing .folio/ directory at {site_root}[/cyan]")

    for dir_path in (folio_dir, folio_dir / "backups" / "projects"):
        dir_path.mkdir(parents=True, exist_ok=True)
        console.print(f"  [green]Created[/green] {dir_path.relative_to(site_root)}")

    gitignore_path = site_root / ".gitignore"
    gitignore_entry = ".folio/backups/"
    if gitignore_path.exists():
        content = gitignore_path.read_text()
        if gitignore_entry not in content:
            with open(gitignore_path, "a") as f:
                f.write(f"\n# folio backups\n{gitignore_entry}\n")
            console.print(f"  [green]Updated[/green] .gitignore with {gitignore_entry}")

    console.print()
    console.print("[green]Done![/green] .folio/ directory initialized.")


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Port")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
@click.pass_obj
def serve(obj: dict, host: str, port: int, reload: bool) -> None:
    """Run the HTTP API server."""
    import uvicorn

    if not (obj or {}).get("verbose"):
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    from folio.core.config import find_folio_root

    try:
        site_root = find_folio_root()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    console.print(f"[cyan]Serving {site_root} on http://{host}:{port}[/cyan]")
    uvicorn.run(
        "folio.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="debug" if (obj or {}).get("verbose") else "info",
    )


# Import and register command groups (imports after main definition intentional)
from folio.config.commands import config  # noqa: E402
from folio.projects.commands import projects  # noqa: E402

main.add_command(projects)
main.add_command(config)


if __name__ == "__main__":
    main()

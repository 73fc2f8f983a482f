#!/usr/bin/env python3
"""
Ops Scale API command line interface
"""
import os
import platform
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from opsscale.config import Settings, load_settings
from opsscale.config.settings import CONFIG_FILE_ENV
from opsscale.exceptions import ConfigurationError
from opsscale.version import __version__

console = Console()


def show_version_info():
    """Display version information"""
    console.print("\n[bold cyan]Ops Scale API Version Information[/bold cyan]\n")

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)

    # Running from a source checkout
    repo_path = Path(__file__).resolve().parent.parent
    if (repo_path / "pyproject.toml").exists():
        table.add_row("Mode", "[yellow]Development[/yellow]")
        table.add_row("Repository", str(repo_path))
    else:
        table.add_row("Mode", "[green]Installed[/green]")

    table.add_row("Python", platform.python_version())

    console.print(table)
    console.print()


def version_callback(ctx, param, value):
    """Callback for --version option"""
    if not value or ctx.resilient_parsing:
        return
    show_version_info()
    ctx.exit()


def _load(config: Optional[str]) -> Settings:
    try:
        return load_settings(Path(config) if config else None)
    except ConfigurationError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)


config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML settings file (default: $OPSSCALE_CONFIG)",
)


@click.group()
@click.option(
    '--version', '-v',
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help='Show detailed version information'
)
def main():
    """Ops Scale API - contact intake backend for the marketing site"""
    pass


@main.command()
@config_option
@click.option("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: PORT or 3000)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(config: Optional[str], host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server"""
    import uvicorn

    settings = _load(config)
    if config:
        # The factory reloads settings in the server process
        os.environ[CONFIG_FILE_ENV] = str(Path(config).resolve())

    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting Ops Scale API[/bold green] on {host}:{port}")

    uvicorn.run(
        "opsscale.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@main.command("check-env")
@config_option
def check_env(config: Optional[str]):
    """Check environment configuration"""
    settings = _load(config)
    report = settings.check()

    table = Table(title="Collaborators")
    table.add_column("Feature", style="cyan")
    table.add_column("Status")
    table.add_column("Detail", style="dim")

    if settings.mongo_uri:
        table.add_row("Database", "[green]MongoDB[/green]", settings.mongo_database)
    elif settings.contact_store_dir:
        table.add_row("Database", "[yellow]Files[/yellow]", str(settings.contact_store_dir))
    else:
        table.add_row("Database", "[red]disabled[/red]", "MONGO_URI not set")

    if settings.mail_enabled:
        table.add_row("Mail", "[green]enabled[/green]", f"{settings.smtp_host}:{settings.smtp_port}")
    else:
        table.add_row("Mail", "[red]disabled[/red]", "SENDGRID_SMTP_PASS not set")

    if settings.upload_enabled:
        table.add_row("Upload", "[green]enabled[/green]", settings.cloudinary_cloud_name)
    else:
        table.add_row("Upload", "[red]disabled[/red]", "Cloudinary credentials incomplete")

    console.print(table)

    for note in report.notes:
        console.print(f"[yellow]⚠ {note}[/yellow]")

    if not report.ok:
        console.print(f"[red]✗ Missing required vars: {', '.join(report.missing)}[/red]")
        sys.exit(1)

    console.print("[green]✓ Required vars present[/green]")


@main.command()
def version():
    """Show version information"""
    show_version_info()


if __name__ == "__main__":
    main()

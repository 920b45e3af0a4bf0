"""Init command implementation."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.prompt import Confirm

from crawlforge.console import console
from crawlforge.core.config.main import CrawlforgeConfig
from crawlforge.errors import ConfigLoadingError


def init_command(
    path: Path | None = typer.Option(None, "--path", "-p", help="Where to write the file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file without asking"),
) -> None:
    """Write a crawlforge.yaml with default settings."""
    console.print("\n[bold blue]🛠️ Initializing crawlforge[/bold blue]")

    config_path = path or CrawlforgeConfig.get_config_path()
    if config_path.exists() and not force:
        if not Confirm.ask(f"{config_path} already exists. Overwrite?", default=False):
            console.print("[yellow]Keeping the existing configuration.[/yellow]")
            raise typer.Exit(0)

    try:
        CrawlforgeConfig().save(config_path)
    except ConfigLoadingError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print("Set [bold]ANTHROPIC_API_KEY[/bold] (or [bold]OPENAI_API_KEY[/bold]) before running the pipeline.")

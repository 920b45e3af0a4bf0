"""Analyze command implementation."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.syntax import Syntax

from crawlforge.commands.utils import CONFIG_OPTION_HELP, load_config_or_exit
from crawlforge.console import console
from crawlforge.errors import CaptureError
from crawlforge.pipeline import CrawlerPipeline


def analyze_command(
    url: str = typer.Argument(..., help="Board list page URL"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    asyncio.run(_analyze_command(url, config_path))


async def _analyze_command(url: str, config_path: Path | None) -> None:
    """Capture the board and print the analysis as JSON."""
    pipeline = CrawlerPipeline(load_config_or_exit(config_path))

    try:
        captured = await pipeline.capture(url)
    except CaptureError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1) from e

    analysis = await pipeline.analyze(captured)
    if not analysis.success:
        raise typer.Exit(1)

    console.print(Syntax(analysis.model_dump_json(by_alias=True, exclude={"raw_response"}, indent=2), "json"))
    if pipeline.needs_review(analysis):
        console.print("[yellow]⚠️ Confidence below the configured threshold; review before generating.[/yellow]")
        raise typer.Exit(2)

"""Generate command implementation."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from crawlforge.ai.agents.code_generator import save_crawler_code
from crawlforge.commands.utils import CONFIG_OPTION_HELP, load_config_or_exit
from crawlforge.console import console
from crawlforge.errors import CaptureError
from crawlforge.pipeline import CrawlerPipeline


def generate_command(
    url: str = typer.Argument(..., help="Board list page URL"),
    name: str = typer.Option(..., "--name", "-n", help="Board name, used for the module and function name"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Directory to write the crawler module to"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    asyncio.run(_generate_command(url, name, output, config_path))


async def _generate_command(url: str, name: str, output: Path | None, config_path: Path | None) -> None:
    """Capture, analyze and render a crawler without running it."""
    config = load_config_or_exit(config_path)
    pipeline = CrawlerPipeline(config)

    try:
        captured = await pipeline.capture(url)
    except CaptureError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1) from e

    analysis = await pipeline.analyze(captured)
    if not analysis.success:
        raise typer.Exit(1)
    if pipeline.needs_review(analysis):
        console.print("[yellow]⚠️ Confidence below the configured threshold; not generating.[/yellow]")
        raise typer.Exit(2)

    generated = await pipeline.generate(analysis, name)
    if not generated.success:
        raise typer.Exit(1)

    save_crawler_code(generated.code, generated.filename, output or config.generation.output_directory)

"""Test command implementation."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from crawlforge.commands.utils import CONFIG_OPTION_HELP, load_config_or_exit
from crawlforge.console import console
from crawlforge.pipeline import CrawlerPipeline


def test_command(
    file: Path = typer.Argument(..., help="Crawler module to run"),
    url: str = typer.Argument(..., help="Board list page URL"),
    name: str = typer.Option(..., "--name", "-n", help="Board name passed to the crawler"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    asyncio.run(_test_command(file, url, name, config_path))


async def _test_command(file: Path, url: str, name: str, config_path: Path | None) -> None:
    """Run an existing crawler module once in the sandbox."""
    if not file.exists():
        console.print(f"[red]Crawler file not found: {file}[/red]")
        raise typer.Exit(1)

    pipeline = CrawlerPipeline(load_config_or_exit(config_path))
    result = await pipeline.test(file.read_text(encoding="utf-8"), url, name)
    raise typer.Exit(0 if result.success else 1)

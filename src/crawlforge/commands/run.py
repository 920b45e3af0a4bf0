"""Run command implementation."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from crawlforge.ai.agents.code_generator import sanitize_board_name, save_crawler_code
from crawlforge.commands.utils import CONFIG_OPTION_HELP, load_config_or_exit
from crawlforge.pipeline import CrawlerPipeline


def run_command(
    url: str = typer.Argument(..., help="Board list page URL"),
    name: str = typer.Option(..., "--name", "-n", help="Board name, used for the module and function name"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Directory to write the final module to"),
    max_attempts: int | None = typer.Option(None, "--max-attempts", "-m", help="Self-correction attempts"),
    config_path: Path | None = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
) -> None:
    asyncio.run(_run_command(url, name, output, max_attempts, config_path))


async def _run_command(
    url: str,
    name: str,
    output: Path | None,
    max_attempts: int | None,
    config_path: Path | None,
) -> None:
    """Run the whole pipeline; exit 0 on success, 2 when review is needed, 1 otherwise."""
    pipeline = CrawlerPipeline(load_config_or_exit(config_path))
    result = await pipeline.run(url, name, max_attempts=max_attempts)

    if result.needs_review:
        raise typer.Exit(2)
    if not result.success or result.final_code is None:
        raise typer.Exit(1)

    if output is not None:
        save_crawler_code(result.final_code, f"{sanitize_board_name(name)}.py", output)

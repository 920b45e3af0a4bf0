from __future__ import annotations

from pathlib import Path

import typer

from crawlforge.console import console
from crawlforge.core.config.main import CrawlforgeConfig
from crawlforge.errors import ConfigLoadingError

CONFIG_OPTION_HELP = "Path to crawlforge.yaml (defaults to ./crawlforge.yaml)"


def load_config_or_exit(config_path: Path | None) -> CrawlforgeConfig:
    """Load configuration, turning loading errors into exit code 1."""
    try:
        return CrawlforgeConfig.load_config(config_path)
    except ConfigLoadingError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

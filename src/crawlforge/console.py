"""Shared rich consoles used by every stage for progress narration."""

from __future__ import annotations

from rich.console import Console

console = Console()
# Live browser echo, outside the sandbox's stdout capture
err_console = Console(stderr=True)


def set_quiet(quiet: bool) -> None:
    """Silence (or restore) narration for the whole process."""
    console.quiet = quiet
    err_console.quiet = quiet

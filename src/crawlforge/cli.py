"""Main CLI application for crawlforge."""

import typer

from . import __version__
from .console import console, set_quiet

app = typer.Typer(
    name="crawlforge",
    help="AI-assisted crawler synthesis for job boards",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Show version information."""
    if value:
        console.print(f"crawlforge v{__version__}")
        console.print("AI-assisted crawler synthesis for job boards")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress narration"),
) -> None:
    """
    crawlforge: AI-assisted crawler synthesis.

    Capture a job board, infer its structure with a multimodal model, render a
    Playwright crawler, test it in a sandbox and let the model repair it.
    """
    set_quiet(quiet)


# Import and register commands after app creation to avoid circular imports
def register_commands() -> None:
    """Register CLI commands."""
    from .commands.analyze import analyze_command
    from .commands.generate import generate_command
    from .commands.init import init_command
    from .commands.run import run_command
    from .commands.test import test_command

    app.command("init", help="Write a default crawlforge.yaml")(init_command)
    app.command("analyze", help="Capture a board and print the inferred structure")(analyze_command)
    app.command("generate", help="Capture, analyze and render a crawler module")(generate_command)
    app.command("test", help="Run an existing crawler module in the sandbox")(test_command)
    app.command("run", help="Full pipeline with self-correction")(run_command)


register_commands()


if __name__ == "__main__":
    app()

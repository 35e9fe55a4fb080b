"""StepQA CLI — Main Typer entry point.

Registers all subcommands and provides --version / --verbose global options.
"""

from __future__ import annotations

import typer
from rich.console import Console

from stepqa import __version__

TAGLINE = "Declarative, label-driven UI tests for web apps."

console = Console()

# ── Version callback ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print("StepQA", style="bold cyan")
        console.print(f"  {TAGLINE}", style="dim")
        console.print(f"  v{__version__}\n", style="bold")
        raise typer.Exit()


# ── Main app ──────────────────────────────────────────────────────────────

app = typer.Typer(
    name="stepqa",
    help=TAGLINE,
    rich_markup_mode="rich",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show StepQA version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
) -> None:
    """StepQA -- run JSON test suites against web apps in a real browser.

    Targets are described the way people read the page: by label, button text
    or placeholder.
    """
    if verbose:
        import logging

        logging.basicConfig(level=logging.DEBUG, format="%(name)s  %(message)s")


# ── Register subcommands ──────────────────────────────────────────────────

from stepqa.cli.install import install  # noqa: E402
from stepqa.cli.run import run  # noqa: E402
from stepqa.cli.validate import validate  # noqa: E402

app.command(name="install", help="Install browser dependencies (Playwright).")(install)
app.command(name="run", help="Run a StepQA test suite.")(run)
app.command(name="validate", help="Check a test suite without launching a browser.")(validate)

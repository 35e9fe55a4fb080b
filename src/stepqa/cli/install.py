"""stepqa install — Download the Playwright browser builds StepQA drives.

Wraps ``python -m playwright install`` for the browsers named on the
command line.  Exit codes follow ``stepqa run``: 2 for an unknown browser
name, 3 when the download itself fails.
"""

from __future__ import annotations

import subprocess
import sys
from typing import NoReturn

import typer
from rich.console import Console
from rich.panel import Panel

from stepqa.models import SUPPORTED_BROWSERS

console = Console()

INSTALL_TIMEOUT_S = 600


def _parse_browsers(browsers: str) -> list[str]:
    names = [b.strip().lower() for b in browsers.split(",") if b.strip()]
    unknown = [b for b in names if b not in SUPPORTED_BROWSERS]
    if unknown or not names:
        _fail(
            f"Unknown browser(s): {', '.join(unknown) or '(none given)'}\n\nOptions: {', '.join(SUPPORTED_BROWSERS)}",
            "Config Error",
            code=2,
        )
    return names


def _fail(message: str, title: str, code: int) -> NoReturn:
    console.print(Panel(f"[red]{message}[/red]", title=f"[red]{title}[/red]", border_style="red"))
    raise typer.Exit(code=code)


def _playwright_install(cmd: list[str], names: list[str], quiet: bool) -> subprocess.CompletedProcess:
    if quiet:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=INSTALL_TIMEOUT_S)
    with console.status(f"[bold blue]Downloading {', '.join(names)}...[/bold blue]", spinner="dots"):
        return subprocess.run(cmd, capture_output=True, text=True, timeout=INSTALL_TIMEOUT_S)


def install(
    browsers: str = typer.Option(
        "chromium",
        "--browsers",
        "-b",
        help="Comma-separated browsers to download: chromium, firefox, webkit.",
    ),
    with_deps: bool = typer.Option(
        False,
        "--with-deps",
        help="Also install the browsers' OS packages (Linux CI images).",
    ),
    ci: bool = typer.Option(
        False,
        "--ci",
        help="Print errors only.",
    ),
) -> None:
    """Download the browsers a suite's ``browser`` setting can name.

    \b
    Examples:
      stepqa install
      stepqa install -b chromium,firefox
      stepqa install --with-deps --ci
    """
    names = _parse_browsers(browsers)
    cmd = [sys.executable, "-m", "playwright", "install"]
    if with_deps:
        cmd.append("--with-deps")
    cmd.extend(names)

    try:
        result = _playwright_install(cmd, names, quiet=ci)
    except subprocess.TimeoutExpired:
        _fail(f"Download did not finish within {INSTALL_TIMEOUT_S // 60} minutes.", "Timeout", code=3)

    if result.returncode != 0:
        details = result.stderr.strip() if result.stderr else "No error output."
        _fail(
            f"playwright install exited with {result.returncode}.\n\n{details}\n\nCommand: {' '.join(cmd)}",
            "Installation Failed",
            code=3,
        )

    if ci:
        return
    for line in (result.stdout or "").strip().splitlines():
        console.print(f"  [dim]{line}[/dim]")
    console.print(
        Panel(
            f"[green]Ready: {', '.join(names)}[/green]\n\nRun a suite with:\n  [bold]stepqa run suite.json[/bold]",
            title="[bold green]StepQA Browsers Installed[/bold green]",
            border_style="green",
        )
    )

"""stepqa validate — Check a JSON test suite without launching a browser.

Parses the suite and runs the static per-action checks the interpreter
would apply before each step: known action, required fields present,
selector values non-empty, known assertion modes.  No side effects.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel

from stepqa.engine.errors import InvalidStepError
from stepqa.engine.steps import TestCase, load_suite

console = Console(stderr=True)

_SEVERITY_ORDER = {"error": 0, "warning": 1}


def _validate_case(case: TestCase) -> list[dict[str, Any]]:
    """Return issue dicts for every step of ``case``."""
    issues: list[dict[str, Any]] = []
    if not case.steps:
        issues.append({"severity": "warning", "field": "steps", "message": "Case has no steps"})
    for index, step in enumerate(case.steps, 1):
        field = f"steps[{index}] {step.action or '?'}"
        for message in step.problems():
            issues.append({"severity": "error", "field": field, "message": message})
        for message in step.warnings():
            issues.append({"severity": "warning", "field": field, "message": message})
    return issues


def validate(
    suite: Path = typer.Argument(..., help="Path to the JSON test suite."),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Treat warnings as errors.",
    ),
) -> None:
    """Validate a test suite's structure and step fields without executing it.

    \b
    Examples:
      stepqa validate tests/login.json
      stepqa validate tests/login.json --strict
    """
    try:
        cases = load_suite(suite)
    except InvalidStepError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Invalid Suite[/red]", border_style="red"))
        raise typer.Exit(code=2)

    total_errors = 0
    total_warnings = 0
    for case in cases:
        issues = _validate_case(case)
        total_errors += sum(1 for i in issues if i["severity"] == "error")
        total_warnings += sum(1 for i in issues if i["severity"] == "warning")
        _print_case_result(case, issues)

    console.print()
    if total_errors == 0 and total_warnings == 0:
        console.print(
            Panel(
                f"[bold green]{len(cases)} case(s) valid. No errors or warnings.[/bold green]",
                border_style="green",
            )
        )
        return
    if total_errors > 0 or strict:
        console.print(
            Panel(
                f"[bold red]Validation failed.[/bold red]  "
                f"{total_errors} error(s), {total_warnings} warning(s)\n\n"
                "Fix the issues above before running the suite.",
                border_style="red",
            )
        )
        raise typer.Exit(code=2)
    console.print(
        Panel(
            f"[yellow]Validation passed with {total_warnings} warning(s).[/yellow]  "
            "Use [bold]--strict[/bold] to fail on warnings.",
            border_style="yellow",
        )
    )


def _print_case_result(case: TestCase, issues: list[dict[str, Any]]) -> None:
    """Print validation results for a single case."""
    errors = [i for i in issues if i["severity"] == "error"]
    warnings = [i for i in issues if i["severity"] == "warning"]

    if not issues:
        console.print(f"  [green]✓[/green] [dim]{case.name}[/dim]  [green]OK[/green] ({len(case.steps)} steps)")
        return

    if errors:
        status = f"[bold red]{len(errors)} error(s)[/bold red]"
        if warnings:
            status += f", [yellow]{len(warnings)} warning(s)[/yellow]"
        console.print(f"  [red]✗[/red] [bold]{case.name}[/bold]  {status}")
    else:
        console.print(f"  [yellow]![/yellow] [dim]{case.name}[/dim]  [yellow]{len(warnings)} warning(s)[/yellow]")

    for issue in sorted(issues, key=lambda i: _SEVERITY_ORDER.get(i["severity"], 99)):
        sev_label = {
            "error": "[bold red]ERROR[/bold red]",
            "warning": "[yellow]WARN[/yellow]",
        }.get(issue["severity"], issue["severity"])
        field_str = f"[dim] ({issue['field']})[/dim]" if issue.get("field") else ""
        console.print(f"      {sev_label}{field_str}  {issue['message']}")

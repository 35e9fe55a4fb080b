"""stepqa run — Execute a StepQA test suite.

This is the primary command. It resolves config, loads the JSON suite,
starts a browser session, runs every case in order (stopping at the first
failing case), and displays Rich output with per-step results.

Exit codes: 0 all passed, 1 a case failed, 2 configuration or suite error,
3 infrastructure error (e.g. Playwright or its browser missing).
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from stepqa.config import StepQAConfig, StepQAConfigError
from stepqa.engine.errors import InvalidStepError
from stepqa.engine.steps import load_suite
from stepqa.models import SUPPORTED_BROWSERS

console = Console(stderr=True)
output_console = Console()  # stdout for machine-readable output

logger = logging.getLogger("stepqa.cli.run")

DEFAULT_CONFIG_NAME = "stepqa.yaml"

# ── Shared error printer ──────────────────────────────────────────────────


def _print_error(message: str, title: str = "Error") -> None:
    console.print(Panel(f"[red]{message}[/red]", title=f"[red]{title}[/red]", border_style="red"))


# ── Config builder ────────────────────────────────────────────────────────


def _build_config(config_path: Path | None, headless: bool | None, browser: str | None) -> StepQAConfig:
    """Load config (``stepqa.yaml`` in cwd by default); CLI options override file values."""
    config = StepQAConfig.from_file(config_path or Path.cwd() / DEFAULT_CONFIG_NAME)
    if headless is not None:
        config.headless = headless
    if browser is not None:
        if browser not in SUPPORTED_BROWSERS:
            raise StepQAConfigError(f"Unknown browser: {browser!r}\n\nOptions: {', '.join(SUPPORTED_BROWSERS)}")
        config.browser = browser
    return config


# ── Rich output helpers ───────────────────────────────────────────────────


def _print_run_header(suite: Path, case_count: int, config: StepQAConfig) -> None:
    info_lines = [
        f"[bold]Suite:[/bold]     {suite}",
        f"[bold]Cases:[/bold]     {case_count}",
        f"[bold]Browser:[/bold]   {config.browser}",
        f"[bold]Headless:[/bold]  {config.headless}",
        f"[bold]Timeout:[/bold]   {config.timeout}ms",
        f"[bold]Captcha:[/bold]   {config.captcha_backend}",
    ]
    console.print()
    console.print(Panel("\n".join(info_lines), title="[bold cyan]StepQA Run[/bold cyan]", border_style="cyan"))
    console.print()


def _print_step_result(
    step_num: int,
    total_steps: int,
    action: str,
    passed: bool,
    duration: float,
    error: str | None = None,
) -> None:
    """Print a single step result line."""
    if passed:
        icon = "[bold green]✓[/bold green]"
        status = "[green]PASS[/green]"
    else:
        icon = "[bold red]✗[/bold red]"
        status = "[red]FAIL[/red]"

    console.print(f"    {icon} Step {step_num}/{total_steps}: {action}  {status}  [dim]{duration:.1f}s[/dim]")
    if error and not passed:
        error_short = error if len(error) <= 120 else error[:117] + "..."
        console.print(f"      [dim red]{error_short}[/dim red]")


def _print_results(result) -> None:
    for case in result.case_reports:
        verdict = "[green]PASS[/green]" if case.passed else "[red]FAIL[/red]"
        console.print(f"  [bold]{case.name}[/bold]  {verdict}")
        for step in case.step_reports:
            _print_step_result(
                step.index, case.total_steps, step.action, step.passed, step.duration_seconds, step.error
            )
        if case.screenshot:
            console.print(f"      [dim]Screenshot: {case.screenshot}[/dim]")
    for name in result.not_run:
        console.print(f"  [dim]{name}  NOT RUN[/dim]")


def _print_summary_panel(result) -> None:
    if result.passed:
        border = "green"
        verdict = "[bold green]ALL CASES PASSED[/bold green]"
    else:
        border = "red"
        verdict = "[bold red]SUITE FAILED[/bold red]"

    total_cases = len(result.case_reports) + len(result.not_run)
    passed_cases = sum(1 for c in result.case_reports if c.passed)
    summary_lines = [
        verdict,
        "",
        f"  Cases:     {passed_cases}/{total_cases} passed",
        f"  Duration:  {result.duration_seconds:.1f}s",
    ]
    failed = result.failed_case
    if failed is not None:
        summary_lines.append(f"  Failed:    {failed.name}")
        summary_lines.append(f"  Cause:     {failed.error}")

    console.print()
    console.print(Panel("\n".join(summary_lines), border_style=border))
    console.print()


# ── JUnit XML writer ──────────────────────────────────────────────────────


def _write_junit_xml(junit_path: Path, result) -> None:
    """Write a JUnit XML report: one testcase per test case, not-run cases as skipped."""
    import xml.etree.ElementTree as ET

    testsuite = ET.Element("testsuite")
    testsuite.set("name", f"stepqa-{result.suite_name}")
    testsuite.set("tests", str(len(result.case_reports) + len(result.not_run)))
    testsuite.set("time", f"{result.duration_seconds:.2f}")

    failures = 0
    for case in result.case_reports:
        testcase = ET.SubElement(testsuite, "testcase")
        testcase.set("name", case.name)
        testcase.set("classname", f"stepqa.{result.suite_name}")
        testcase.set("time", f"{case.duration_seconds:.2f}")
        if not case.passed:
            failures += 1
            failure = ET.SubElement(testcase, "failure")
            failure.set("message", case.error or "Case failed")
            failure.text = case.error or ""
    for name in result.not_run:
        testcase = ET.SubElement(testsuite, "testcase")
        testcase.set("name", name)
        testcase.set("classname", f"stepqa.{result.suite_name}")
        ET.SubElement(testcase, "skipped").set("message", "Not run: an earlier case failed")

    testsuite.set("failures", str(failures))
    testsuite.set("skipped", str(len(result.not_run)))

    tree = ET.ElementTree(testsuite)
    ET.indent(tree, space="  ")
    tree.write(str(junit_path), xml_declaration=True, encoding="unicode")


# ── Main command ──────────────────────────────────────────────────────────


def run(
    suite: Path = typer.Argument(..., help="Path to the JSON test suite."),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help=f"YAML config file.  [default: ./{DEFAULT_CONFIG_NAME} if present]",
    ),
    headless: bool | None = typer.Option(
        None,
        "--headless/--no-headless",
        help="Override the config's headless setting.",
    ),
    browser: str | None = typer.Option(
        None,
        "--browser",
        help="Override the config's browser: chromium, firefox or webkit.",
    ),
    report: Path | None = typer.Option(
        None,
        "--report",
        help="Path to write a markdown report.",
    ),
    junit_xml: Path | None = typer.Option(
        None,
        "--junit-xml",
        help="Path to write JUnit XML report (for CI integration).",
    ),
    output_format: str = typer.Option(
        "text",
        "--output",
        "-o",
        help="Output format: text or json.  [default: text]",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging.",
    ),
) -> None:
    """Run a JSON test suite in a real browser.

    \b
    Examples:
      stepqa run tests/login.json
      stepqa run tests/login.json -c stepqa.yaml --headless
      stepqa run tests/login.json --report report.md --junit-xml junit.xml
      stepqa run tests/login.json --output json | jq '.passed'
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s  %(message)s")

    if output_format not in ("text", "json"):
        _print_error(f"Invalid output format: {output_format!r}\n\nValid formats: text, json", "Config Error")
        raise typer.Exit(code=2)

    try:
        config = _build_config(config_path, headless, browser)
    except StepQAConfigError as exc:
        _print_error(str(exc), "Config Error")
        raise typer.Exit(code=2)

    try:
        cases = load_suite(suite)
    except InvalidStepError as exc:
        _print_error(str(exc), "Suite Error")
        raise typer.Exit(code=2)

    if output_format == "text":
        _print_run_header(suite, len(cases), config)

    # Import the engine lazily (fails if playwright is not installed)
    try:
        from stepqa.engine.browser import BrowserSession
        from stepqa.engine.interpreter import StepRunner
    except ImportError as exc:
        _print_error(
            f"Failed to import StepQA engine: {exc}\n\n"
            "This usually means a dependency is missing.\n"
            "Try: pip install stepqa\n"
            "Then: stepqa install",
            "Import Error",
        )
        raise typer.Exit(code=3)

    try:
        session = BrowserSession.start(config)
    except Exception as exc:
        logger.exception("Browser launch failed")
        _print_error(
            f"Could not launch {config.browser}: {exc}\n\nRun [bold]stepqa install[/bold] to install browsers.",
            "Infrastructure Error",
        )
        raise typer.Exit(code=3)

    try:
        runner = StepRunner(session.page, config)
        result = runner.run_suite(cases, name=suite.stem)
        if config.keep_browser_open and sys.stdin.isatty():
            console.print("[dim]Browser left open. Press Enter to close it.[/dim]")
            input()
    except KeyboardInterrupt:
        console.print("\n[yellow]Run interrupted by user.[/yellow]")
        raise typer.Exit(code=1)
    except Exception as exc:
        logger.exception("Unexpected error during run")
        _print_error(f"Unexpected error: {exc}\n\nRun with --verbose for full traceback.", "Infrastructure Error")
        raise typer.Exit(code=3)
    finally:
        session.stop()

    if output_format == "json":
        output_console.print(
            json.dumps(result.to_dict(), indent=2, ensure_ascii=False), markup=False, highlight=False, soft_wrap=True
        )
    else:
        _print_results(result)
        _print_summary_panel(result)

    if report:
        from stepqa.engine.report_generator import ReportGenerator

        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(ReportGenerator().generate(result), encoding="utf-8")
        if output_format == "text":
            console.print(f"[dim]Report written to: {report}[/dim]")

    if junit_xml:
        try:
            _write_junit_xml(junit_xml, result)
            if output_format == "text":
                console.print(f"[dim]JUnit XML written to: {junit_xml}[/dim]\n")
        except OSError as exc:
            console.print(f"[yellow]Warning: Failed to write JUnit XML: {exc}[/yellow]")

    if not result.passed:
        raise typer.Exit(code=1)

"""StepQA Report Generator — Produces run report artifacts in markdown format.

Generates structured markdown reports from suite results: verdict header,
summary counts, a per-case step table, and failure details with the
diagnostic screenshot path.
"""

from __future__ import annotations

import dataclasses
from typing import Any


@dataclasses.dataclass
class StepReport:
    """Outcome of a single step."""

    index: int  # 1-based within its case
    action: str
    passed: bool
    duration_seconds: float
    error: str | None = None
    error_type: str | None = None  # class name of the underlying cause


@dataclasses.dataclass
class CaseReport:
    """Outcome of one test case; steps after a failure are not attempted."""

    name: str
    passed: bool
    duration_seconds: float
    step_reports: list[StepReport] = dataclasses.field(default_factory=list)
    total_steps: int = 0
    error: str | None = None
    screenshot: str | None = None

    @property
    def failed_step(self) -> StepReport | None:
        return next((s for s in self.step_reports if not s.passed), None)


@dataclasses.dataclass
class SuiteResult:
    """Complete result of a suite run.

    The suite stops at the first failing case; the names of cases that were
    never started are listed in ``not_run``.
    """

    suite_name: str
    passed: bool
    start_time: str
    end_time: str
    duration_seconds: float
    case_reports: list[CaseReport] = dataclasses.field(default_factory=list)
    not_run: list[str] = dataclasses.field(default_factory=list)

    @property
    def failed_case(self) -> CaseReport | None:
        return next((c for c in self.case_reports if not c.passed), None)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


class ReportGenerator:
    """Generates markdown reports from suite results."""

    def generate(self, result: SuiteResult) -> str:
        """Generate a complete report in markdown format.

        Args:
            result: The SuiteResult to report on.

        Returns:
            Complete markdown report as a string.
        """
        sections = [
            self._header(result),
            self._summary(result),
            self._case_sections(result),
            self._failure_details(result),
            self._not_run_section(result),
        ]
        return "\n\n".join(s for s in sections if s)

    def _header(self, r: SuiteResult) -> str:
        verdict = "PASS" if r.passed else "FAIL"
        return (
            f"# StepQA Report: {r.suite_name}\n"
            f"\n"
            f"**Date:** {r.start_time}\n"
            f"**Finished:** {r.end_time}\n"
            f"**Verdict:** {verdict}"
        )

    def _summary(self, r: SuiteResult) -> str:
        total_cases = len(r.case_reports) + len(r.not_run)
        passed_cases = sum(1 for c in r.case_reports if c.passed)
        steps_run = sum(len(c.step_reports) for c in r.case_reports)
        steps_passed = sum(1 for c in r.case_reports for s in c.step_reports if s.passed)
        return (
            f"## Summary\n"
            f"- Cases: {passed_cases}/{total_cases} passed\n"
            f"- Steps: {steps_passed}/{steps_run} passed\n"
            f"- Duration: {r.duration_seconds:.1f}s"
        )

    def _case_sections(self, r: SuiteResult) -> str:
        blocks = []
        for case in r.case_reports:
            result_str = "PASS" if case.passed else "FAIL"
            lines = [
                f"## Case: {case.name} ({result_str})",
                "| Step | Action | Result | Duration | Notes |",
                "|------|--------|--------|----------|-------|",
            ]
            for step in case.step_reports:
                step_result = "PASS" if step.passed else "FAIL"
                notes = (step.error or "").replace("|", "\\|").replace("\n", " ")
                if len(notes) > 80:
                    notes = notes[:77] + "..."
                lines.append(
                    f"| {step.index} | {step.action} | {step_result} | {step.duration_seconds:.1f}s | {notes} |"
                )
            skipped = case.total_steps - len(case.step_reports)
            if skipped > 0:
                lines.append("")
                lines.append(f"{skipped} step(s) not run.")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def _failure_details(self, r: SuiteResult) -> str:
        case = r.failed_case
        if case is None:
            return ""
        lines = ["## Failure", "", f"- **Case:** {case.name}"]
        step = case.failed_step
        if step is not None:
            lines.append(f"- **Step:** [{step.index}] {step.action}")
            if step.error_type:
                lines.append(f"- **Error type:** {step.error_type}")
        lines.append(f"- **Cause:** {case.error or 'unknown'}")
        lines.append(f"- **Screenshot:** `{case.screenshot}`" if case.screenshot else "- **Screenshot:** none captured")
        return "\n".join(lines)

    def _not_run_section(self, r: SuiteResult) -> str:
        if not r.not_run:
            return ""
        lines = ["## Not Run", ""]
        for name in r.not_run:
            lines.append(f"- {name}")
        return "\n".join(lines)

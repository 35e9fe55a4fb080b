"""Unit tests for stepqa.engine.report_generator — StepReport, CaseReport, SuiteResult, ReportGenerator."""

from __future__ import annotations

import json

from stepqa.engine.report_generator import CaseReport, ReportGenerator, StepReport, SuiteResult


# ---------------------------------------------------------------------------
# Helpers: factory functions for test data
# ---------------------------------------------------------------------------


def _make_step_report(**overrides) -> StepReport:
    defaults = {
        "index": 1,
        "action": "goto",
        "passed": True,
        "duration_seconds": 0.4,
    }
    defaults.update(overrides)
    return StepReport(**defaults)


def _make_case_report(**overrides) -> CaseReport:
    defaults = {
        "name": "login",
        "passed": True,
        "duration_seconds": 2.5,
        "step_reports": [_make_step_report()],
        "total_steps": 1,
    }
    defaults.update(overrides)
    return CaseReport(**defaults)


def _make_failed_case() -> CaseReport:
    return _make_case_report(
        name="create user",
        passed=False,
        step_reports=[
            _make_step_report(),
            _make_step_report(
                index=2,
                action="click",
                passed=False,
                error="Could not locate button '保存'",
                error_type="NotFoundError",
            ),
        ],
        total_steps=4,
        error="Step [2] click failed: NotFoundError: Could not locate button '保存'",
        screenshot="assets/errors/error_1700000000000.png",
    )


def _make_suite_result(**overrides) -> SuiteResult:
    defaults = {
        "suite_name": "smoke",
        "passed": True,
        "start_time": "2026-02-19T10:00:00+00:00",
        "end_time": "2026-02-19T10:01:00+00:00",
        "duration_seconds": 60.0,
        "case_reports": [_make_case_report()],
        "not_run": [],
    }
    defaults.update(overrides)
    return SuiteResult(**defaults)


# ---------------------------------------------------------------------------
# 1. Result dataclasses
# ---------------------------------------------------------------------------


class TestCaseReport:
    def test_failed_step_is_none_when_passed(self):
        assert _make_case_report().failed_step is None

    def test_failed_step_returns_the_failure(self):
        step = _make_failed_case().failed_step
        assert step.index == 2
        assert step.error_type == "NotFoundError"


class TestSuiteResult:
    def test_failed_case(self):
        failed = _make_failed_case()
        result = _make_suite_result(passed=False, case_reports=[_make_case_report(), failed])
        assert result.failed_case is failed

    def test_to_dict_is_json_serializable(self):
        result = _make_suite_result(passed=False, case_reports=[_make_failed_case()], not_run=["logout"])
        data = json.loads(json.dumps(result.to_dict()))
        assert data["suite_name"] == "smoke"
        assert data["not_run"] == ["logout"]
        assert data["case_reports"][0]["step_reports"][1]["error_type"] == "NotFoundError"


# ---------------------------------------------------------------------------
# 2. Markdown report
# ---------------------------------------------------------------------------


class TestReportGenerator:
    """ReportGenerator.generate should render every section of a run."""

    def test_header_shows_verdict(self):
        report = ReportGenerator().generate(_make_suite_result())
        assert report.startswith("# StepQA Report: smoke")
        assert "**Verdict:** PASS" in report

    def test_failing_verdict(self):
        report = ReportGenerator().generate(_make_suite_result(passed=False, case_reports=[_make_failed_case()]))
        assert "**Verdict:** FAIL" in report

    def test_summary_counts_not_run_cases(self):
        result = _make_suite_result(passed=False, case_reports=[_make_failed_case()], not_run=["a", "b"])
        report = ReportGenerator().generate(result)
        assert "- Cases: 0/3 passed" in report
        assert "- Steps: 1/2 passed" in report

    def test_step_table_rows(self):
        report = ReportGenerator().generate(_make_suite_result(passed=False, case_reports=[_make_failed_case()]))
        assert "## Case: create user (FAIL)" in report
        assert "| 1 | goto | PASS | 0.4s |  |" in report
        assert "| 2 | click | FAIL |" in report
        assert "2 step(s) not run." in report

    def test_pipe_in_error_is_escaped(self):
        case = _make_case_report(
            passed=False,
            step_reports=[_make_step_report(passed=False, error="Expected 'Bob|25x', got 'Bob|25'")],
        )
        report = ReportGenerator().generate(_make_suite_result(passed=False, case_reports=[case]))
        assert "Bob\\|25x" in report

    def test_long_error_is_truncated_in_table(self):
        case = _make_case_report(passed=False, step_reports=[_make_step_report(passed=False, error="x" * 200)])
        report = ReportGenerator().generate(_make_suite_result(passed=False, case_reports=[case]))
        assert "x" * 77 + "..." in report

    def test_failure_details(self):
        report = ReportGenerator().generate(_make_suite_result(passed=False, case_reports=[_make_failed_case()]))
        assert "## Failure" in report
        assert "- **Step:** [2] click" in report
        assert "- **Error type:** NotFoundError" in report
        assert "`assets/errors/error_1700000000000.png`" in report

    def test_failure_without_screenshot(self):
        failed = _make_failed_case()
        failed.screenshot = None
        report = ReportGenerator().generate(_make_suite_result(passed=False, case_reports=[failed]))
        assert "- **Screenshot:** none captured" in report

    def test_passing_run_has_no_failure_or_not_run_sections(self):
        report = ReportGenerator().generate(_make_suite_result())
        assert "## Failure" not in report
        assert "## Not Run" not in report

    def test_not_run_section_lists_cases(self):
        result = _make_suite_result(passed=False, case_reports=[_make_failed_case()], not_run=["edit", "delete"])
        report = ReportGenerator().generate(result)
        assert "## Not Run\n\n- edit\n- delete" in report

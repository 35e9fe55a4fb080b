"""StepQA Step Interpreter — runs test cases step by step against one page.

Steps run strictly in order.  A failing step is wrapped in
``StepFailedError`` (step index, action, cause), a diagnostic screenshot is
attempted, and the whole case stops.  A suite stops at its first failing
case.  Between successful steps a fixed settle delay is applied.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from stepqa.config import StepQAConfig
from stepqa.engine.captcha import CaptchaHandler, CaptchaSolver, build_captcha_solver
from stepqa.engine.errors import (
    AssertionFailedError,
    ExternalTimeoutError,
    InvalidStepError,
    StepFailedError,
    UnknownActionError,
)
from stepqa.engine.forms import FormControls
from stepqa.engine.menu import MenuNavigator
from stepqa.engine.pacing import settle
from stepqa.engine.report_generator import CaseReport, StepReport, SuiteResult
from stepqa.engine.scope import ScopeResolver
from stepqa.engine.selectors import ElementLocator
from stepqa.engine.steps import ExpectSpec, TestCase, TestStep, load_suite
from stepqa.engine.tables import TableEngine
from stepqa.models import TABLE_DELETE_LABEL, TABLE_EDIT_LABEL

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger("stepqa.engine.interpreter")

CLICK_DELAY_MS = 500  # page reaction after a click
SEARCH_DELAY_MS = 500  # result list refresh after a search


class StepRunner:
    """Interprets declarative steps against a single live page.

    The runner owns the page for the duration of a run; nothing else should
    drive it concurrently.
    """

    def __init__(
        self,
        page: Page,
        config: StepQAConfig | None = None,
        captcha_solver: CaptchaSolver | None = None,
    ) -> None:
        self._page = page
        self._config = config or StepQAConfig()
        settle_ms = self._config.action_delay_ms

        self.scopes = ScopeResolver(page)
        self.locator = ElementLocator(page, self.scopes)
        self.forms = FormControls(page, self.locator, settle_ms)
        self.tables = TableEngine(page, self.locator, settle_ms)
        self.menu = MenuNavigator(page, self.locator, settle_ms)
        self.captcha = CaptchaHandler(
            self.locator,
            captcha_solver or build_captcha_solver(self._config.captcha_backend),
            self._config.captcha_dir,
            attempts=self._config.retry_captcha,
            settle_ms=settle_ms,
        )

        self._handlers: dict[str, Callable[[TestStep], None]] = {
            "goto": self._goto,
            "input": self._input,
            "click": self._click,
            "assert": self._assert,
            "menu_click": self._menu_click,
            "captcha_input": self._captcha_input,
            "select_option": self._select_option,
            "select_options": self._select_options,
            "checkbox_toggle": self._checkbox_toggle,
            "checkbox_set": self._checkbox_set,
            "checkboxes_set": self._checkboxes_set,
            "radio_select": self._radio_select,
            "radios_select": self._radios_select,
            "table_edit": self._table_edit,
            "table_delete": self._table_delete,
            "table_assert": self._table_assert,
            "search": self._search,
        }

    # -- Suite / case --------------------------------------------------------

    def run_suite_file(self, path: Path) -> SuiteResult:
        return self.run_suite(load_suite(path), name=path.stem)

    def run_suite(self, cases: list[TestCase], name: str = "suite") -> SuiteResult:
        """Run cases in order, stopping at the first failing case."""
        start_time = datetime.now(timezone.utc).isoformat()
        start = time.monotonic()
        reports: list[CaseReport] = []
        not_run: list[str] = []

        for position, case in enumerate(cases):
            report = self.run_case(case)
            reports.append(report)
            if not report.passed:
                not_run = [c.name for c in cases[position + 1 :]]
                if not_run:
                    logger.info("Suite stopped; %d case(s) not run", len(not_run))
                break

        passed = all(r.passed for r in reports)
        return SuiteResult(
            suite_name=name,
            passed=passed,
            start_time=start_time,
            end_time=datetime.now(timezone.utc).isoformat(),
            duration_seconds=time.monotonic() - start,
            case_reports=reports,
            not_run=not_run,
        )

    def run_case(self, case: TestCase) -> CaseReport:
        """Run every step of ``case``; the first failure ends the case."""
        total = len(case.steps)
        logger.info("Case started: %s (%d steps)", case.name, total)
        start = time.monotonic()
        step_reports: list[StepReport] = []

        for index, step in enumerate(case.steps, 1):
            logger.info("  [%d/%d] %s", index, total, step.action)
            step_start = time.monotonic()
            try:
                self.run_step(step, index)
            except StepFailedError as exc:
                step_reports.append(
                    StepReport(
                        index=index,
                        action=step.action,
                        passed=False,
                        duration_seconds=time.monotonic() - step_start,
                        error=str(exc.cause),
                        error_type=type(exc.cause).__name__,
                    )
                )
                screenshot = self._capture_failure()
                logger.error("Case failed: %s: %s", case.name, exc)
                return CaseReport(
                    name=case.name,
                    passed=False,
                    duration_seconds=time.monotonic() - start,
                    step_reports=step_reports,
                    total_steps=total,
                    error=str(exc),
                    screenshot=str(screenshot) if screenshot else None,
                )
            step_reports.append(
                StepReport(
                    index=index,
                    action=step.action,
                    passed=True,
                    duration_seconds=time.monotonic() - step_start,
                )
            )
            settle(self._page, self._config.step_delay_ms)

        logger.info("Case passed: %s", case.name)
        return CaseReport(
            name=case.name,
            passed=True,
            duration_seconds=time.monotonic() - start,
            step_reports=step_reports,
            total_steps=total,
        )

    def run_step(self, step: TestStep, index: int) -> None:
        """Dispatch one step to its handler.

        Raises:
            StepFailedError: any handler failure, with ``index`` and the action.
        """
        handler = self._handlers.get(step.action)
        try:
            if handler is None:
                raise UnknownActionError(step.action)
            step.validate()
            handler(step)
        except PlaywrightTimeoutError as exc:
            raise StepFailedError(index, step.action, ExternalTimeoutError(str(exc))) from exc
        except Exception as exc:
            raise StepFailedError(index, step.action, exc) from exc

    def _capture_failure(self) -> Path | None:
        """Best-effort page screenshot; a failure here never masks the step error."""
        directory = self._config.screenshots_dir
        path = directory / f"error_{int(time.time() * 1000)}.png"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            self._page.screenshot(path=str(path))
        except Exception as exc:
            logger.warning("Failure screenshot not captured: %s", exc)
            return None
        logger.info("Failure screenshot: %s", path)
        return path

    # -- Expectations --------------------------------------------------------

    def verify_expect(self, expect: ExpectSpec) -> None:
        element = self.locator.locate(expect.selector)
        mode = expect.mode
        if mode == "value_equals":
            actual = element.input_value()
            if actual != expect.text:
                raise AssertionFailedError(
                    f"Value mismatch: expected {expect.text!r}, got {actual!r}", expect.text, actual
                )
        elif mode == "text_equals":
            actual = (element.text_content() or "").strip()
            if actual != expect.text:
                raise AssertionFailedError(
                    f"Text mismatch: expected {expect.text!r}, got {actual!r}", expect.text, actual
                )
        elif mode == "text_contains":
            actual = element.text_content() or ""
            if expect.text not in actual:
                raise AssertionFailedError(
                    f"Text does not contain {expect.text!r}: got {actual.strip()!r}", expect.text, actual
                )
        elif mode == "visible":
            if not element.is_visible():
                raise AssertionFailedError(f"Element {expect.selector} is not visible", "visible", "hidden")
        else:
            raise InvalidStepError(f"Unknown expect mode: {mode!r}")
        logger.debug("Expectation %s on %s holds", mode, expect.selector)

    # -- Handlers ------------------------------------------------------------

    def _goto(self, step: TestStep) -> None:
        self._page.goto(step.url, wait_until="networkidle")

    def _input(self, step: TestStep) -> None:
        self.locator.locate(step.selector).fill(step.text)
        if step.expect is not None:
            self.verify_expect(step.expect)

    def _click(self, step: TestStep) -> None:
        element = self.locator.locate(step.selector)
        try:
            element.scroll_into_view_if_needed()
        except PlaywrightError as exc:
            logger.debug("Scroll into view failed for %s: %s", step.selector, exc)
        # Forced: thin overlays (tooltips, masks) must not block the click
        element.click(force=True)
        settle(self._page, CLICK_DELAY_MS)

    def _assert(self, step: TestStep) -> None:
        element = self.locator.locate(step.selector)
        if not element.is_visible():
            raise AssertionFailedError(f"Element {step.selector} is not visible", "visible", "hidden")
        if step.expect is not None:
            self.verify_expect(step.expect)

    def _menu_click(self, step: TestStep) -> None:
        self.menu.click_menu(step.menu_path)

    def _captcha_input(self, step: TestStep) -> None:
        if step.captcha.auto:
            self.captcha.auto_solve()
        else:
            self.captcha.solve_and_input(step.captcha.image_selector, step.captcha.input_selector)

    def _select_option(self, step: TestStep) -> None:
        self.forms.select_option(step.selector, step.text)

    def _select_options(self, step: TestStep) -> None:
        self.forms.select_options(step.selector, step.options)

    def _checkbox_toggle(self, step: TestStep) -> None:
        self.forms.toggle_checkbox(step.selector)

    def _checkbox_set(self, step: TestStep) -> None:
        self.forms.set_checkbox(step.selector, step.checked)

    def _checkboxes_set(self, step: TestStep) -> None:
        self.forms.set_checkboxes(step.selectors, step.checked)

    def _radio_select(self, step: TestStep) -> None:
        self.forms.select_radio(step.selector)

    def _radios_select(self, step: TestStep) -> None:
        self.forms.select_radios(step.selectors)

    def _table_edit(self, step: TestStep) -> None:
        table = step.table
        self.tables.click_row_action(table.selector, table.row, table.action or TABLE_EDIT_LABEL)

    def _table_delete(self, step: TestStep) -> None:
        table = step.table
        self.tables.click_row_action(table.selector, table.row, table.action or TABLE_DELETE_LABEL)

    def _table_assert(self, step: TestStep) -> None:
        table = step.table
        self.tables.assert_cell(table.selector, table.row, table.column, table.value, table.mode or "equals")

    def _search(self, step: TestStep) -> None:
        for item in step.search.inputs:
            self.locator.locate(item.selector).fill(item.text)
            settle(self._page, self._config.action_delay_ms)
        self.locator.locate(step.search.button).click()
        settle(self._page, SEARCH_DELAY_MS)

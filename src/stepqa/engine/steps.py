"""StepQA step model — test suites, cases and steps parsed from JSON.

A suite file is a JSON array of ``{"name", "steps"}`` objects; a single
object with ``steps`` is read as a one-case suite.  Parsing is lenient and
never touches the browser; ``TestStep.problems()`` performs the static
per-action checks shared by ``stepqa validate`` and the interpreter.
"""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any

from stepqa.engine.errors import InvalidStepError
from stepqa.engine.selectors import SelectorDescriptor
from stepqa.engine.tables import ColumnLocator, RowLocator
from stepqa.models import ACTIONS, ASSERT_MODES, COLUMN_KINDS, ROW_KINDS, TABLE_ASSERT_MODES


def _object(data: Any, field: str) -> dict[str, Any] | None:
    """``data`` as a JSON object, ``None`` when absent."""
    if data is None:
        return None
    if not isinstance(data, dict):
        raise InvalidStepError(f"'{field}' must be an object, got {type(data).__name__}")
    return data


def _array(data: Any, field: str) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise InvalidStepError(f"'{field}' must be an array, got {type(data).__name__}")
    return data


def _flag(data: Any, field: str) -> bool | None:
    """JSON ``true``/``false`` only; strings such as ``"false"`` are rejected."""
    if data is None:
        return None
    if not isinstance(data, bool):
        raise InvalidStepError(f"'{field}' must be true or false, got {data!r}")
    return data


@dataclasses.dataclass
class ExpectSpec:
    """Follow-up check on an ``input`` or ``assert`` step."""

    selector: SelectorDescriptor
    mode: str
    text: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ExpectSpec | None:
        data = _object(data, "expect")
        if not data:
            return None
        return cls(
            selector=SelectorDescriptor.from_dict(data, "expect") or SelectorDescriptor(),
            mode=str(data.get("mode") or "").strip().lower(),
            text=str(data.get("text") or ""),
        )


@dataclasses.dataclass
class TableSpec:
    selector: SelectorDescriptor | None = None
    row: RowLocator | None = None
    column: ColumnLocator | None = None
    action: str = ""  # row-action label
    value: str = ""  # expected cell text
    mode: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TableSpec | None:
        data = _object(data, "table")
        if data is None:
            return None
        return cls(
            selector=SelectorDescriptor.from_dict(data.get("selector"), "table.selector"),
            row=RowLocator.from_dict(data.get("row")),
            column=ColumnLocator.from_dict(data.get("column")),
            action=str(data.get("action") or ""),
            value=str(data.get("value") or ""),
            mode=str(data.get("mode") or "").strip().lower(),
        )


@dataclasses.dataclass
class SearchInput:
    selector: SelectorDescriptor | None
    text: str = ""


@dataclasses.dataclass
class SearchSpec:
    """Fill every input, then press the search button."""

    inputs: list[SearchInput] = dataclasses.field(default_factory=list)
    button: SelectorDescriptor | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SearchSpec | None:
        data = _object(data, "search")
        if data is None:
            return None
        inputs = []
        for i, raw in enumerate(_array(data.get("inputs"), "search.inputs"), 1):
            item = _object(raw, f"search.inputs[{i}]") or {}
            inputs.append(
                SearchInput(
                    selector=SelectorDescriptor.from_dict(item.get("selector"), f"search.inputs[{i}].selector"),
                    text=str(item.get("text") or ""),
                )
            )
        return cls(inputs=inputs, button=SelectorDescriptor.from_dict(data.get("button"), "search.button"))


@dataclasses.dataclass
class CaptchaSpec:
    image_selector: SelectorDescriptor | None = None
    input_selector: SelectorDescriptor | None = None
    auto: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CaptchaSpec | None:
        data = _object(data, "captcha")
        if data is None:
            return None
        return cls(
            image_selector=SelectorDescriptor.from_dict(data.get("image_selector"), "captcha.image_selector"),
            input_selector=SelectorDescriptor.from_dict(data.get("input_selector"), "captcha.input_selector"),
            auto=bool(_flag(data.get("auto"), "captcha.auto")),
        )


@dataclasses.dataclass
class TestStep:
    """One declarative action; which fields matter depends on ``action``."""

    __test__ = False  # not a pytest class

    action: str
    url: str = ""
    selector: SelectorDescriptor | None = None
    selectors: list[SelectorDescriptor] = dataclasses.field(default_factory=list)
    text: str = ""
    options: list[str] = dataclasses.field(default_factory=list)
    expect: ExpectSpec | None = None
    menu_path: str = ""
    captcha: CaptchaSpec | None = None
    checked: bool | None = None
    table: TableSpec | None = None
    search: SearchSpec | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestStep:
        if not isinstance(data, dict):
            raise InvalidStepError(f"Step must be an object, got {type(data).__name__}")
        return cls(
            action=str(data.get("action") or "").strip(),
            url=str(data.get("url") or ""),
            selector=SelectorDescriptor.from_dict(data.get("selector")),
            selectors=[
                d
                for d in (
                    SelectorDescriptor.from_dict(s, f"selectors[{i}]")
                    for i, s in enumerate(_array(data.get("selectors"), "selectors"), 1)
                )
                if d is not None
            ],
            text=str(data.get("text") or ""),
            options=[str(o) for o in _array(data.get("options"), "options")],
            expect=ExpectSpec.from_dict(data.get("expect")),
            menu_path=str(data.get("menu_path") or ""),
            captcha=CaptchaSpec.from_dict(data.get("captcha")),
            checked=_flag(data.get("checked"), "checked"),
            table=TableSpec.from_dict(data.get("table")),
            search=SearchSpec.from_dict(data.get("search")),
        )

    def problems(self) -> list[str]:
        """Static checks for this step's action; an empty list means runnable."""
        action = self.action
        issues: list[str] = []
        if not action:
            return ["action is missing"]
        if action not in ACTIONS:
            return [f"unknown action {action!r}"]

        if action in (
            "input",
            "click",
            "assert",
            "select_option",
            "select_options",
            "checkbox_toggle",
            "checkbox_set",
            "radio_select",
        ):
            if self.selector is None:
                issues.append(f"{action} requires 'selector'")
            else:
                issues.extend(f"selector: {p}" for p in self.selector.problems())

        if action == "goto" and not self.url:
            issues.append("goto requires 'url'")
        if action in ("input", "select_option") and not self.text:
            issues.append(f"{action} requires 'text'")
        if action == "select_options" and not self.options:
            issues.append("select_options requires a non-empty 'options' list")
        if action in ("checkbox_set", "checkboxes_set") and self.checked is None:
            issues.append(f"{action} requires 'checked' (true/false)")
        if action in ("checkboxes_set", "radios_select"):
            if not self.selectors:
                issues.append(f"{action} requires a non-empty 'selectors' list")
            for i, selector in enumerate(self.selectors, 1):
                issues.extend(f"selectors[{i}]: {p}" for p in selector.problems())
        if action == "menu_click" and not self.menu_path.strip():
            issues.append("menu_click requires 'menu_path'")
        if action in ("input", "assert") and self.expect is not None:
            issues.extend(self._expect_problems())
        if action == "captcha_input":
            issues.extend(self._captcha_problems())
        if action in ("table_edit", "table_delete", "table_assert"):
            issues.extend(self._table_problems())
        if action == "search":
            issues.extend(self._search_problems())
        return issues

    def descriptors(self) -> list[SelectorDescriptor]:
        """Every selector descriptor the step carries."""
        found = [self.selector] + list(self.selectors)
        if self.expect is not None:
            found.append(self.expect.selector)
        if self.table is not None:
            found.append(self.table.selector)
        if self.search is not None:
            found.extend(item.selector for item in self.search.inputs)
            found.append(self.search.button)
        if self.captcha is not None:
            found.extend([self.captcha.image_selector, self.captcha.input_selector])
        return [d for d in found if d is not None]

    def warnings(self) -> list[str]:
        return [f"{d}: {w}" for d in self.descriptors() for w in d.warnings()]

    def validate(self) -> None:
        """Raise ``InvalidStepError`` for the first static problem, if any."""
        issues = self.problems()
        if issues:
            raise InvalidStepError("; ".join(issues))

    def _expect_problems(self) -> list[str]:
        assert self.expect is not None
        issues = [f"expect: {p}" for p in self.expect.selector.problems()]
        if self.expect.mode not in ASSERT_MODES:
            issues.append(f"expect: unknown mode {self.expect.mode!r}")
        return issues

    def _captcha_problems(self) -> list[str]:
        if self.captcha is None:
            return ["captcha_input requires 'captcha'"]
        if self.captcha.auto:
            return []
        if self.captcha.image_selector is None or self.captcha.input_selector is None:
            return ["captcha_input requires 'image_selector' and 'input_selector', or 'auto: true'"]
        return []

    def _table_problems(self) -> list[str]:
        action = self.action
        table = self.table
        if table is None:
            return [f"{action} requires 'table'"]
        issues = []
        if table.row is None:
            issues.append(f"{action} requires 'table.row'")
        elif table.row.kind not in ROW_KINDS:
            issues.append(f"table.row: unknown type {table.row.kind!r}")
        if action == "table_assert":
            if table.column is None:
                issues.append("table_assert requires 'table.column'")
            elif table.column.kind not in COLUMN_KINDS:
                issues.append(f"table.column: unknown type {table.column.kind!r}")
            if not table.value:
                issues.append("table_assert requires 'table.value'")
            if table.mode and table.mode not in TABLE_ASSERT_MODES:
                issues.append(f"table: unknown mode {table.mode!r}")
        return issues

    def _search_problems(self) -> list[str]:
        if self.search is None:
            return ["search requires 'search'"]
        issues = []
        if self.search.button is None:
            issues.append("search requires 'search.button'")
        for i, item in enumerate(self.search.inputs, 1):
            if item.selector is None:
                issues.append(f"search.inputs[{i}] requires 'selector'")
        return issues


@dataclasses.dataclass
class TestCase:
    """A named, ordered list of steps."""

    __test__ = False  # not a pytest class

    name: str
    steps: list[TestStep] = dataclasses.field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any], position: int = 1) -> TestCase:
        if not isinstance(data, dict):
            raise InvalidStepError(f"Test case {position} must be an object, got {type(data).__name__}")
        steps = data.get("steps")
        if not isinstance(steps, list):
            raise InvalidStepError(f"Test case {position} has no 'steps' list")
        name = str(data.get("name") or f"case {position}")
        parsed = []
        for index, step in enumerate(steps, 1):
            try:
                parsed.append(TestStep.from_dict(step))
            except InvalidStepError as exc:
                raise InvalidStepError(f"Test case {name!r}, step {index}: {exc}") from exc
        return cls(name=name, steps=parsed)


def parse_suite(data: Any) -> list[TestCase]:
    """Build test cases from decoded JSON (array of cases, or a single case object)."""
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise InvalidStepError(f"Test suite must be a JSON array of cases, got {type(data).__name__}")
    return [TestCase.from_dict(case, position) for position, case in enumerate(data, 1)]


def load_suite(path: Path) -> list[TestCase]:
    """Read and parse a JSON suite file.

    Raises:
        InvalidStepError: the file cannot be read, is not JSON, or has the wrong shape.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise InvalidStepError(f"Cannot read test suite {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InvalidStepError(f"Invalid JSON in {path}: {exc}") from exc
    return parse_suite(data)

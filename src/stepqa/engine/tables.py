"""StepQA Table Engine — rows, cells and row actions.

A table is resolved first (explicit selector, or the first ``<table>`` on the
page), then a row inside it, then optionally a column.  The matched row is
held as a live element handle, so the cell and the row-action button are
taken from that same node instead of re-locating the row by its text.

Rows with identical text are ambiguous: the first one in document order is
used and a warning is logged.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from playwright.sync_api import Error as PlaywrightError

from stepqa.engine.errors import (
    AssertionFailedError,
    ColumnNotFoundError,
    InvalidStepError,
    NotFoundError,
    RowNotFoundError,
    TableNotFoundError,
)
from stepqa.engine.pacing import settle
from stepqa.engine.selectors import ElementLocator, SelectorDescriptor, Strategy, xpath_string
from stepqa.models import ACTION_DELAY_MS, ROW_KINDS, TABLE_ASSERT_MODES

if TYPE_CHECKING:
    from playwright.sync_api import ElementHandle, Locator, Page

logger = logging.getLogger("stepqa.engine.tables")

ROW_PATTERN = "tbody tr"
FALLBACK_ROW_PATTERN = "tr"
CELL_PATTERN = "td, th"
HEADER_PATTERN = "thead th, th"

# Clickable targets inside a row, tried until one click succeeds
ROW_ACTION_CASCADE = (
    Strategy("action-text", "text={css}"),
    Strategy("action-text-contains", "text=/{regex}/"),
    Strategy("action-button", "button:has-text({css})"),
    Strategy("action-anchor", "a:has-text({css})"),
    Strategy("action-button-xpath", "xpath=.//button[contains(text(), {xpath})]"),
    Strategy("action-anchor-xpath", "xpath=.//a[contains(text(), {xpath})]"),
)


@dataclasses.dataclass(frozen=True)
class RowLocator:
    """Which row: ``index`` (1-based), ``text`` (exact, trimmed) or ``contains``."""

    kind: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, field: str = "table.row") -> RowLocator | None:
        if data is None:
            return None
        if not isinstance(data, dict):
            raise InvalidStepError(f"'{field}' must be an object, got {type(data).__name__}")
        if not data:
            return None
        kind = str(data.get("type") or data.get("kind") or "").strip().lower()
        return cls(kind=kind, value=str(data.get("value", "")))

    def __str__(self) -> str:
        return f"row {self.kind}={self.value!r}"


@dataclasses.dataclass(frozen=True)
class ColumnLocator:
    """Which column: ``index`` (1-based) or ``header`` (substring of header text)."""

    kind: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, field: str = "table.column") -> ColumnLocator | None:
        if data is None:
            return None
        if not isinstance(data, dict):
            raise InvalidStepError(f"'{field}' must be an object, got {type(data).__name__}")
        if not data:
            return None
        kind = str(data.get("type") or data.get("kind") or "").strip().lower()
        return cls(kind=kind, value=str(data.get("value", "")))

    def __str__(self) -> str:
        return f"column {self.kind}={self.value!r}"


@dataclasses.dataclass
class TableRow:
    """A resolved row: its 1-based position, trimmed text and live handle."""

    index: int
    text: str
    handle: ElementHandle

    def cells(self) -> list[ElementHandle]:
        return self.handle.query_selector_all(CELL_PATTERN)


def _parse_index(raw: str, what: str) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidStepError(f"{what} index must be an integer, got {raw!r}") from None


def compare(actual: str, expected: str, mode: str = "equals") -> None:
    """Compare cell text against ``expected``; raise ``AssertionFailedError`` on mismatch."""
    if mode not in TABLE_ASSERT_MODES:
        raise InvalidStepError(f"Unknown table assertion mode: {mode!r}")
    if mode == "equals" and actual != expected:
        raise AssertionFailedError(f"Expected {expected!r}, got {actual!r}", expected, actual)
    if mode == "contains" and expected not in actual:
        raise AssertionFailedError(f"Expected text containing {expected!r}, got {actual!r}", expected, actual)
    if mode == "not_equals" and actual == expected:
        raise AssertionFailedError(f"Expected anything but {expected!r}, got {actual!r}", expected, actual)
    if mode == "not_contains" and expected in actual:
        raise AssertionFailedError(f"Expected text without {expected!r}, got {actual!r}", expected, actual)


class TableEngine:
    """Resolves tables, rows and cells, and clicks row action buttons."""

    def __init__(self, page: Page, locator: ElementLocator, settle_ms: int = ACTION_DELAY_MS) -> None:
        self._page = page
        self._locator = locator
        self._settle_ms = settle_ms

    # -- Table ---------------------------------------------------------------

    def find_table(self, selector: SelectorDescriptor | None = None) -> Locator:
        """Return the table locator; an empty selector means the first table on the page."""
        root = self._locator.scopes.document()
        if selector is None or selector.is_empty:
            table = root.locator("table").first
            what = "first table on the page"
        elif selector.kind in ("css", "xpath", "id"):
            table = self._locator.query(selector).first
            what = str(selector)
        else:
            # Text-like selectors name a header cell of the wanted table
            table = self._locator.scopes.resolve(selector.scope).locator(
                f"xpath=//table[.//th[contains(normalize-space(.), {xpath_string(selector.value)})]]"
            ).first
            what = f"table with header {selector.value!r}"
        if table.count() == 0:
            raise TableNotFoundError(f"Table not found: {what}")
        return table

    def _rows(self, table: Locator) -> Locator:
        rows = table.locator(ROW_PATTERN)
        if rows.count() == 0:
            rows = table.locator(FALLBACK_ROW_PATTERN)
        return rows

    # -- Rows ----------------------------------------------------------------

    def find_row(self, selector: SelectorDescriptor | None, row: RowLocator) -> TableRow:
        """Resolve ``row`` inside the table described by ``selector``.

        Raises:
            TableNotFoundError: no table matched.
            RowNotFoundError: index out of range or no row text matched.
        """
        if row.kind not in ROW_KINDS:
            raise InvalidStepError(f"Unsupported row locator type: {row.kind!r}")
        rows = self._rows(self.find_table(selector))
        count = rows.count()

        if row.kind == "index":
            index = _parse_index(row.value, "Row")
            if index < 1 or index > count:
                raise RowNotFoundError(f"Row index {index} out of range (table has {count} rows)")
            item = rows.nth(index - 1)
            return TableRow(index=index, text=(item.text_content() or "").strip(), handle=item.element_handle())

        texts = [(rows.nth(i).text_content() or "").strip() for i in range(count)]
        for i, text in enumerate(texts):
            if (row.kind == "text" and text == row.value) or (row.kind == "contains" and row.value in text):
                duplicates = texts.count(text)
                if duplicates > 1:
                    logger.warning(
                        "%d rows share the text %r; using the first (row %d) in document order",
                        duplicates,
                        text,
                        i + 1,
                    )
                return TableRow(index=i + 1, text=text, handle=rows.nth(i).element_handle())
        raise RowNotFoundError(f"No row matches {row}")

    def get_row_data(self, selector: SelectorDescriptor | None, row: RowLocator) -> dict[str, str]:
        """Map header text to cell text for one row (``column_N`` keys when there is no header)."""
        table = self.find_table(selector)
        found = self.find_row(selector, row)
        headers = table.locator(HEADER_PATTERN)
        header_texts = [(headers.nth(i).text_content() or "").strip() for i in range(headers.count())]
        cell_texts = [(cell.text_content() or "").strip() for cell in found.cells()]
        if not header_texts:
            return {f"column_{i}": text for i, text in enumerate(cell_texts, 1)}
        return dict(zip(header_texts, cell_texts))

    # -- Cells ---------------------------------------------------------------

    def column_index(self, selector: SelectorDescriptor | None, column: ColumnLocator) -> int:
        if column.kind == "index":
            index = _parse_index(column.value, "Column")
            if index < 1:
                raise ColumnNotFoundError(f"Column index must be at least 1, got {index}")
            return index
        if column.kind == "header":
            headers = self.find_table(selector).locator(HEADER_PATTERN)
            for i in range(headers.count()):
                if column.value in (headers.nth(i).text_content() or ""):
                    return i + 1
            raise ColumnNotFoundError(f"No header contains {column.value!r}")
        raise InvalidStepError(f"Unsupported column locator type: {column.kind!r}")

    def find_cell(self, selector: SelectorDescriptor | None, row: RowLocator, column: ColumnLocator) -> ElementHandle:
        found = self.find_row(selector, row)
        index = self.column_index(selector, column)
        cells = found.cells()
        if index > len(cells):
            raise ColumnNotFoundError(f"Row {found.index} has {len(cells)} cells, wanted column {index}")
        return cells[index - 1]

    def cell_text(self, selector: SelectorDescriptor | None, row: RowLocator, column: ColumnLocator) -> str:
        return (self.find_cell(selector, row, column).text_content() or "").strip()

    def assert_cell(
        self,
        selector: SelectorDescriptor | None,
        row: RowLocator,
        column: ColumnLocator,
        expected: str,
        mode: str = "equals",
    ) -> None:
        actual = self.cell_text(selector, row, column)
        try:
            compare(actual, expected, mode or "equals")
        except AssertionFailedError as exc:
            raise AssertionFailedError(f"Table cell ({row}, {column}): {exc}", exc.expected, exc.actual) from None
        logger.debug("Table cell (%s, %s) %s %r", row, column, mode, expected)

    # -- Row actions ---------------------------------------------------------

    def click_row_action(self, selector: SelectorDescriptor | None, row: RowLocator, label: str) -> None:
        """Click the first element labeled ``label`` inside the row that accepts the click."""
        found = self.find_row(selector, row)
        for strategy in ROW_ACTION_CASCADE:
            try:
                matches = found.handle.query_selector_all(strategy.render(label))
                if not matches:
                    continue
                matches[0].click()
            except PlaywrightError as exc:
                logger.debug("Row action %s failed for %r: %s", strategy.name, label, exc)
                continue
            logger.debug("Clicked %r in row %d via %s", label, found.index, strategy.name)
            settle(self._page, self._settle_ms)
            return
        raise NotFoundError(f"No action {label!r} in row {found.index} ({found.text!r})")

"""StepQA Form Controls — dropdowns, checkboxes and radios.

Native ``<select>`` elements are driven through Playwright's option
selection; anything else is treated as a framework-emulated popup: click to
open, then click each option item.  Every mutating operation ends with a
settle delay so the UI can re-render before the next step.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from playwright.sync_api import Error as PlaywrightError

from stepqa.engine.errors import BatchItemError, InvalidStepError, NotFoundError, OptionNotFoundError, StepQAError
from stepqa.engine.pacing import settle
from stepqa.engine.selectors import ElementLocator, SelectorDescriptor, Strategy, first_match
from stepqa.models import ACTION_DELAY_MS

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger("stepqa.engine.forms")

# Popup option items, most specific first
OPTION_CASCADE = (
    Strategy("native-option", "//option[contains(text(), {xpath})]"),
    Strategy("list-item", "//li[contains(text(), {xpath})]"),
    Strategy("role-option", "[role='option']:has-text({css})"),
    Strategy("option-text", "text={css}"),
)

MULTI_SELECT_MODIFIER = "Control"
OPEN_DELAY_MS = 300  # popup open animation
ITEM_DELAY_MS = 100  # between items of one call


class FormControls:
    """Compound operations on multi-valued form controls."""

    def __init__(self, page: Page, locator: ElementLocator, settle_ms: int = ACTION_DELAY_MS) -> None:
        self._page = page
        self._locator = locator
        self._settle_ms = settle_ms

    # -- Dropdowns -----------------------------------------------------------

    def select_option(self, selector: SelectorDescriptor, value: str) -> None:
        self.select_options(selector, [value])

    def select_options(self, selector: SelectorDescriptor, values: Sequence[str]) -> None:
        """Select ``values`` in the dropdown described by ``selector``.

        Tries native selection by option label, then by option value.  If the
        control is not a native select (or the options are missing), opens it
        and clicks each option item, holding the multi-select modifier when
        the control accepts several values.

        Raises:
            OptionNotFoundError: an option could not be found.  Options
                clicked before it stay selected.
        """
        values = list(values)
        if not values:
            raise InvalidStepError("Option list must not be empty")
        control = self._locator.locate_select(selector)

        try:
            control.select_option(label=values)
            logger.debug("Selected %s by label on %s", values, selector)
            settle(self._page, self._settle_ms)
            return
        except PlaywrightError as exc:
            logger.debug("Select by label failed on %s: %s", selector, exc)
        try:
            control.select_option(value=values)
            logger.debug("Selected %s by value on %s", values, selector)
            settle(self._page, self._settle_ms)
            return
        except PlaywrightError as exc:
            logger.debug("Select by value failed on %s, treating as custom dropdown: %s", selector, exc)

        multiple = bool(control.evaluate("el => el.multiple || false"))
        control.click()
        settle(self._page, OPEN_DELAY_MS)

        root = self._locator.scopes.document()
        for value in values:
            try:
                option = first_match(root, value, OPTION_CASCADE, what="option")
            except NotFoundError as exc:
                raise OptionNotFoundError(f"Option {value!r} not found in {selector}") from exc
            if multiple:
                self._page.keyboard.down(MULTI_SELECT_MODIFIER)
                try:
                    option.click()
                finally:
                    self._page.keyboard.up(MULTI_SELECT_MODIFIER)
            else:
                option.click()
            logger.debug("Clicked option %r", value)
            settle(self._page, ITEM_DELAY_MS)

        settle(self._page, self._settle_ms)

    def get_select_value(self, selector: SelectorDescriptor) -> str:
        control = self._locator.locate_select(selector)
        value = control.evaluate(
            "el => { const sel = el.tagName.toLowerCase() === 'select' ? el : el.querySelector('select');"
            " return sel ? sel.value : ''; }"
        )
        return value if isinstance(value, str) else ""

    def get_select_options(self, selector: SelectorDescriptor) -> list[str]:
        control = self._locator.locate_select(selector)
        options = control.evaluate(
            "el => { const sel = el.tagName.toLowerCase() === 'select' ? el : el.querySelector('select');"
            " if (!sel) return []; return Array.from(sel.options).map(opt => opt.text); }"
        )
        return [str(o) for o in options or []]

    # -- Checkboxes ----------------------------------------------------------

    def toggle_checkbox(self, selector: SelectorDescriptor) -> bool:
        """Flip the checkbox and return its new state."""
        checkbox = self._locator.locate(selector)
        if checkbox.is_checked():
            checkbox.uncheck()
            new_state = False
        else:
            checkbox.check()
            new_state = True
        logger.debug("Toggled checkbox %s -> %s", selector, new_state)
        settle(self._page, self._settle_ms)
        return new_state

    def set_checkbox(self, selector: SelectorDescriptor, checked: bool) -> None:
        checkbox = self._locator.locate(selector)
        if checked:
            checkbox.check()
        else:
            checkbox.uncheck()
        settle(self._page, self._settle_ms)

    def set_checkboxes(self, selectors: Sequence[SelectorDescriptor], checked: bool) -> None:
        if not selectors:
            raise InvalidStepError("Checkbox list must not be empty")
        for i, selector in enumerate(selectors, 1):
            try:
                self.set_checkbox(selector, checked)
            except (StepQAError, PlaywrightError) as exc:
                raise BatchItemError(i, str(selector), exc) from exc

    def toggle_checkboxes(self, selectors: Sequence[SelectorDescriptor]) -> None:
        if not selectors:
            raise InvalidStepError("Checkbox list must not be empty")
        for i, selector in enumerate(selectors, 1):
            try:
                self.toggle_checkbox(selector)
            except (StepQAError, PlaywrightError) as exc:
                raise BatchItemError(i, str(selector), exc) from exc

    def get_checkbox_state(self, selector: SelectorDescriptor) -> bool:
        return self._locator.locate(selector).is_checked()

    # -- Radios --------------------------------------------------------------

    def select_radio(self, selector: SelectorDescriptor) -> None:
        self.select_radios([selector])

    def select_radios(self, selectors: Sequence[SelectorDescriptor]) -> None:
        """Check each radio in turn; radios from different groups are independent."""
        if not selectors:
            raise InvalidStepError("Radio list must not be empty")
        for i, selector in enumerate(selectors, 1):
            try:
                self._locator.locate(selector).check()
            except (StepQAError, PlaywrightError) as exc:
                if len(selectors) == 1:
                    raise
                raise BatchItemError(i, str(selector), exc) from exc
            settle(self._page, ITEM_DELAY_MS)
        settle(self._page, self._settle_ms)

    def get_radio_state(self, selector: SelectorDescriptor) -> bool:
        return self._locator.locate(selector).is_checked()

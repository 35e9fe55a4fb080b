"""StepQA Selector Resolution — turns a human-readable descriptor into one element.

Test authors describe targets the way a person reads the page ("the field
labeled 策略名称", "the button labeled 新建").  Each selector kind owns an
ordered cascade of strategies; a strategy is a query pattern rendered with
the descriptor's value and evaluated against the scope root.

Resolution rules, applied uniformly:

- Strategies are tried in order; the first one with any match wins and
  broader strategies after it are never consulted.
- Within a strategy, the first *visible* match is preferred; if none is
  visible the first match is returned (callers may still fail later, e.g.
  on a visibility assertion).
- Nothing is cached: every call re-derives the root and re-queries.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import TYPE_CHECKING, Any, Sequence

from playwright.sync_api import Error as PlaywrightError

from stepqa.engine.errors import InvalidStepError, NotFoundError
from stepqa.engine.scope import ScopeResolver
from stepqa.models import SCOPES, SELECTOR_KINDS

if TYPE_CHECKING:
    from playwright.sync_api import ElementHandle, Locator, Page

logger = logging.getLogger("stepqa.engine.selectors")

_RAW_KINDS = ("xpath", "css", "id")


@dataclasses.dataclass(frozen=True)
class SelectorDescriptor:
    """What to find: ``kind`` decides how ``value`` is read, ``scope`` where to look."""

    kind: str = "text"
    value: str = ""
    scope: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, field: str = "selector") -> SelectorDescriptor | None:
        """Build from a step's ``{"type", "value", "scope"}`` mapping (``kind`` is accepted for ``type``).

        Raises:
            InvalidStepError: ``data`` is not a JSON object; ``field`` names it in the message.
        """
        if data is None:
            return None
        if not isinstance(data, dict):
            raise InvalidStepError(f"'{field}' must be an object, got {type(data).__name__}")
        if not data:
            return None
        kind = str(data.get("type") or data.get("kind") or "text").strip().lower()
        scope = str(data.get("scope") or "").strip().lower()
        return cls(kind=kind, value=str(data.get("value") or ""), scope=scope)

    @property
    def is_empty(self) -> bool:
        return not self.value

    def problems(self) -> list[str]:
        """Errors that make the descriptor unresolvable."""
        return [] if self.value else ["selector value is empty"]

    def warnings(self) -> list[str]:
        """Tolerated oddities: unknown kinds and scopes fall back to defaults."""
        issues = []
        if self.kind not in SELECTOR_KINDS:
            issues.append(f"unknown selector type {self.kind!r} (treated as 'text')")
        if self.scope not in SCOPES:
            issues.append(f"unknown scope {self.scope!r} (treated as whole page)")
        return issues

    def __str__(self) -> str:
        scope = f" in {self.scope}" if self.scope else ""
        return f"{self.kind}={self.value!r}{scope}"


# -- Query-string quoting ----------------------------------------------------


def css_string(text: str) -> str:
    """Quote text for CSS attribute values, ``:has-text()`` and ``text=``."""
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def xpath_string(text: str) -> str:
    """Quote text as an XPath 1.0 literal, using concat() when both quote kinds occur."""
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    parts = text.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def escape_regex(text: str) -> str:
    """Escape text for a JavaScript regex body inside a ``text=/.../`` selector."""
    return re.sub(r"([\\^$.|?*+()\[\]{}/])", r"\\\1", text)


# -- Strategies ---------------------------------------------------------------


@dataclasses.dataclass(frozen=True)
class Strategy:
    """One heuristic: a query pattern with ``{css}``, ``{xpath}`` and ``{regex}`` slots."""

    name: str
    pattern: str
    visible_only: bool = False

    def render(self, value: str) -> str:
        return self.pattern.format(css=css_string(value), xpath=xpath_string(value), regex=escape_regex(value))

    def candidates(self, root: Locator, value: str) -> Locator:
        return root.locator(self.render(value))


def _s(name: str, pattern: str, visible_only: bool = False) -> Strategy:
    return Strategy(name=name, pattern=pattern, visible_only=visible_only)


PLACEHOLDER = (
    _s("placeholder-exact", "input[placeholder={css}]"),
    _s("placeholder-contains", "input[placeholder*={css}]"),
)

# Label followed by its control, either as a sibling or under the same parent
LABEL_CONTROL = (
    _s("label-adjacent-input", "label:has-text({css}) + input"),
    _s("label-sibling-input", "label:has-text({css}) ~ input"),
    _s("label-adjacent-select", "label:has-text({css}) + select"),
    _s("label-sibling-select", "label:has-text({css}) ~ select"),
    _s("label-adjacent-textarea", "label:has-text({css}) + textarea"),
    _s("label-sibling-textarea", "label:has-text({css}) ~ textarea"),
    _s("label-following-input", "//label[contains(text(), {xpath})]/following-sibling::input[1]"),
    _s("label-following-select", "//label[contains(text(), {xpath})]/following-sibling::select[1]"),
    _s("label-following-textarea", "//label[contains(text(), {xpath})]/following-sibling::textarea[1]"),
    _s("label-parent-input", "//label[contains(text(), {xpath})]/../input"),
    _s("label-parent-select", "//label[contains(text(), {xpath})]/../select"),
    _s("label-parent-textarea", "//label[contains(text(), {xpath})]/../textarea"),
)

LABEL_CHOICE = (
    _s("label-nested-checkbox", "label:has-text({css}) input[type='checkbox']"),
    _s("label-nested-radio", "label:has-text({css}) input[type='radio']"),
    _s("label-descendant-checkbox", "//label[contains(text(), {xpath})]//input[@type='checkbox']"),
    _s("label-descendant-radio", "//label[contains(text(), {xpath})]//input[@type='radio']"),
)

# Catch-all for frameworks that render field captions without <label>
TEXT_FOLLOWING_CONTROL = (
    _s("text-following-input", "//*[contains(normalize-space(text()), {xpath})]/following::input[1]"),
    _s("text-following-textarea", "//*[contains(normalize-space(text()), {xpath})]/following::textarea[1]"),
    _s(
        "text-following-editable",
        "//*[contains(normalize-space(text()), {xpath})]/following::*[@contenteditable='true'][1]",
    ),
)

ARIA_LABEL = (
    _s("aria-label-exact", "[aria-label={css}]"),
    _s("aria-label-contains", "[aria-label*={css}]"),
)

TITLE = (
    _s("title-exact", "[title={css}]"),
    _s("title-contains", "[title*={css}]"),
)

DATA_ATTRIBUTES = (
    _s("data-label", "[data-label*={css}]"),
    _s("data-placeholder", "[data-placeholder*={css}]"),
)

# Resolves the <select>, not the matching <option>
SELECT_BY_OPTION = (
    _s("select-has-option", "select:has(option:has-text({css}))"),
    _s("select-option-xpath", "//select[.//option[contains(text(), {xpath})]]"),
)

CHOICE_BY_VALUE = (
    _s("checkbox-value", "input[type='checkbox'][value*={css}]"),
    _s("radio-value", "input[type='radio'][value*={css}]"),
    _s(
        "checkbox-adjacent-label",
        "//input[@type='checkbox'][following-sibling::*[1][self::label][contains(normalize-space(.), {xpath})]]",
    ),
    _s(
        "radio-adjacent-label",
        "//input[@type='radio'][following-sibling::*[1][self::label][contains(normalize-space(.), {xpath})]]",
    ),
)

NATIVE_BUTTON = (
    _s("button-text", "button:has-text({css})"),
    _s("element-ui-button", ".el-button:has-text({css})"),
    _s("ant-design-button", ".ant-btn:has-text({css})"),
)

VISIBLE_TEXT = (
    _s("text-exact", "text={css}"),
    _s("text-regex-exact", "text=/^{regex}$/"),
    _s("text-regex-contains", "text=/{regex}/"),
)

FIELD_CASCADE = PLACEHOLDER + LABEL_CONTROL + TEXT_FOLLOWING_CONTROL

BUTTON_CASCADE = NATIVE_BUTTON + (
    _s("role-button", "[role='button']:has-text({css})"),
    _s("button-descendant-exact", "//button[.//*[normalize-space(text())={xpath}]]"),
    _s("button-descendant-contains", "//button[.//*[contains(normalize-space(text()), {xpath})]]"),
)

# Many front-ends style plain tags as buttons
PSEUDO_BUTTON_CASCADE = VISIBLE_TEXT + (
    _s("paragraph", "p:has-text({css})"),
    _s("div", "div:has-text({css})"),
    _s("span", "span:has-text({css})"),
    _s("anchor", "a:has-text({css})"),
    _s("class-signin", "[class*='signIn']:has-text({css})"),
    _s("class-login", "[class*='login']:has-text({css})"),
    _s("class-button", "[class*='button']:has-text({css})"),
    _s("class-btn", "[class*='btn']:has-text({css})"),
    _s("id-login", "[id*='login']:has-text({css})"),
    _s("id-signin", "[id*='signIn']:has-text({css})"),
)

TEXT_CASCADE = (
    PLACEHOLDER
    + LABEL_CONTROL
    + LABEL_CHOICE
    + ARIA_LABEL
    + TITLE
    + DATA_ATTRIBUTES
    + SELECT_BY_OPTION
    + CHOICE_BY_VALUE
    + NATIVE_BUTTON
    + VISIBLE_TEXT
)

SELECT_CONTROL_CASCADE = (
    _s("label-adjacent-select", "label:has-text({css}) + select"),
    _s("label-sibling-select", "label:has-text({css}) ~ select"),
    _s("label-following-select", "//label[contains(text(), {xpath})]/following-sibling::select[1]"),
    _s("label-parent-select", "//label[contains(text(), {xpath})]/../select"),
    _s("label-parent-wrapped-select", "//label[contains(text(), {xpath})]/../div/select"),
) + SELECT_BY_OPTION

DIALOG_FALLBACK = _s("dialog-first-visible-control", "input, textarea, [contenteditable='true']", visible_only=True)

CASCADES: dict[str, tuple[Strategy, ...]] = {
    "text": TEXT_CASCADE,
    "field": FIELD_CASCADE,
    "button": BUTTON_CASCADE + PSEUDO_BUTTON_CASCADE,
    "select": SELECT_CONTROL_CASCADE,
}


# -- Resolution ---------------------------------------------------------------


def pick(candidates: Locator, visible_only: bool = False) -> ElementHandle | None:
    """Apply the tie-break: first visible match, else first match (unless ``visible_only``)."""
    count = candidates.count()
    if count == 0:
        return None
    for i in range(count):
        candidate = candidates.nth(i)
        if candidate.is_visible():
            return candidate.element_handle()
    if visible_only:
        return None
    return candidates.first.element_handle()


def first_match(root: Locator, value: str, strategies: Sequence[Strategy], what: str = "element") -> ElementHandle:
    """Run a cascade and return the element picked by the first strategy with a match.

    Raises:
        NotFoundError: no strategy yielded a usable element.  A Playwright
            error from an individual probe is chained as the cause.
    """
    last_error: Exception | None = None
    for strategy in strategies:
        try:
            handle = pick(strategy.candidates(root, value), visible_only=strategy.visible_only)
        except PlaywrightError as exc:
            logger.debug("Strategy %s failed for %r: %s", strategy.name, value, exc)
            last_error = exc
            continue
        if handle is not None:
            logger.debug("Resolved %s %r via %s", what, value, strategy.name)
            return handle
    raise NotFoundError(f"Could not locate {what} {value!r}") from last_error


class ElementLocator:
    """Resolves ``SelectorDescriptor`` objects against the live page."""

    def __init__(self, page: Page, scopes: ScopeResolver | None = None) -> None:
        self._page = page
        self._scopes = scopes or ScopeResolver(page)

    @property
    def page(self) -> Page:
        return self._page

    @property
    def scopes(self) -> ScopeResolver:
        return self._scopes

    def locate(self, descriptor: SelectorDescriptor) -> ElementHandle:
        """Return exactly one element for ``descriptor`` or raise ``NotFoundError``."""
        if descriptor.is_empty:
            raise NotFoundError(f"Empty selector value for type {descriptor.kind!r}")
        root = self._scopes.resolve(descriptor.scope)

        if descriptor.kind in _RAW_KINDS:
            return self._raw_query(root, descriptor)

        if descriptor.kind == "field":
            try:
                return first_match(root, descriptor.value, FIELD_CASCADE, what="field")
            except NotFoundError:
                if descriptor.scope != "dialog":
                    raise
                # Modal forms are small enough that the first visible control is usually right
                handle = pick(DIALOG_FALLBACK.candidates(root, descriptor.value), visible_only=True)
                if handle is None:
                    raise
                logger.info("Field %r not matched by label, using first visible control in dialog", descriptor.value)
                return handle

        if descriptor.kind == "button":
            return first_match(root, descriptor.value, CASCADES["button"], what="button")

        if descriptor.kind != "text":
            logger.debug("Unknown selector type %r, resolving as text", descriptor.kind)
        return first_match(root, descriptor.value, TEXT_CASCADE, what="text")

    def locate_select(self, descriptor: SelectorDescriptor) -> ElementHandle:
        """Resolve a dropdown control, preferring label-to-<select> associations."""
        if descriptor.kind in ("text", "field") and not descriptor.is_empty:
            root = self._scopes.resolve(descriptor.scope)
            try:
                return first_match(root, descriptor.value, SELECT_CONTROL_CASCADE, what="select")
            except NotFoundError:
                logger.debug("No <select> labeled %r, falling back to general resolution", descriptor.value)
        return self.locate(descriptor)

    def query(self, descriptor: SelectorDescriptor) -> Locator:
        """Return the raw locator for css/xpath/id descriptors, scoped like ``locate``."""
        root = self._scopes.resolve(descriptor.scope)
        return root.locator(self._raw_pattern(descriptor))

    def _raw_query(self, root: Locator, descriptor: SelectorDescriptor) -> ElementHandle:
        matches = root.locator(self._raw_pattern(descriptor))
        if matches.count() == 0:
            raise NotFoundError(f"No element matches {descriptor}")
        return matches.first.element_handle()

    @staticmethod
    def _raw_pattern(descriptor: SelectorDescriptor) -> str:
        if descriptor.kind == "id":
            return f"[id={css_string(descriptor.value)}]"
        if descriptor.kind == "xpath" and not descriptor.value.startswith("xpath="):
            return f"xpath={descriptor.value}"
        return descriptor.value

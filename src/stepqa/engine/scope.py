"""StepQA Scope Resolver — narrows the search root for a selector.

A scope is re-resolved on every call: dialogs open and close between
steps, so a root is never cached.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from playwright.sync_api import Error as PlaywrightError

if TYPE_CHECKING:
    from playwright.sync_api import Locator, Page

logger = logging.getLogger("stepqa.engine.scope")

# Modal containers: ARIA first, then Element-UI, Ant Design and generic wrappers
DIALOG_PATTERNS = (
    "[role='dialog']",
    ".el-dialog__wrapper",
    ".el-dialog",
    ".ant-modal-root",
    ".ant-modal-content",
    ".ant-modal",
    ".modal",
    ".dialog",
)

# Main content regions, excluding side menus and headers
MAIN_PATTERNS = (
    "main",
    ".el-main",
    ".el-container .el-main",
    ".ant-layout-content",
    ".layout-main",
    "#app main",
    "#app .main",
    "#app .content",
)


class ScopeResolver:
    """Resolves a logical scope name (``""``, ``"dialog"``, ``"main"``) to a root locator."""

    def __init__(self, page: Page) -> None:
        self._page = page

    def document(self) -> Locator:
        return self._page.locator("body")

    def resolve(self, scope: str | None = "") -> Locator:
        if scope == "dialog":
            return self._visible_dialog()
        if scope == "main":
            return self._main_region()
        if scope:
            logger.warning("Unknown scope %r, searching the whole page", scope)
        return self.document()

    def _visible_dialog(self) -> Locator:
        """Return the first visible dialog container across all patterns.

        Falls back to the whole page: a missing dialog should not abort a
        step whose target can still be found elsewhere.
        """
        for pattern in DIALOG_PATTERNS:
            try:
                matches = self._page.locator(pattern)
                for i in range(matches.count()):
                    candidate = matches.nth(i)
                    if candidate.is_visible():
                        logger.debug("Dialog scope resolved via %s (match %d)", pattern, i)
                        return candidate
            except PlaywrightError as exc:
                logger.debug("Dialog probe %s failed: %s", pattern, exc)
                continue
        logger.warning("No visible dialog container found, searching the whole page")
        return self.document()

    def _main_region(self) -> Locator:
        for pattern in MAIN_PATTERNS:
            try:
                matches = self._page.locator(pattern)
                if matches.count() > 0:
                    logger.debug("Main scope resolved via %s", pattern)
                    return matches.first
            except PlaywrightError as exc:
                logger.debug("Main probe %s failed: %s", pattern, exc)
                continue
        logger.debug("No main content region found, searching the whole page")
        return self.document()

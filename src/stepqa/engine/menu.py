"""StepQA Menu Navigator — walks a ``"A > B > C"`` path through nested menus."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from playwright.sync_api import Error as PlaywrightError

from stepqa.engine.errors import InvalidStepError
from stepqa.engine.pacing import settle
from stepqa.engine.selectors import ElementLocator, Strategy, first_match
from stepqa.models import ACTION_DELAY_MS

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger("stepqa.engine.menu")

MENU_SEPARATOR = ">"
EXPAND_DELAY_MS = 300  # submenu expand animation

MENU_ITEM_CASCADE = (
    Strategy("menu-text", "text={css}"),
    Strategy("menu-regex-exact", "text=/^{regex}$/"),
    Strategy("menu-regex-contains", "text=/{regex}/"),
    Strategy("menu-li", "li:has-text({css})"),
    Strategy("menu-anchor", "a:has-text({css})"),
    Strategy("menu-span", "span:has-text({css})"),
    Strategy("menu-div", "div:has-text({css})"),
    Strategy("role-menuitem", "[role='menuitem']:has-text({css})"),
    Strategy("role-button", "[role='button']:has-text({css})"),
    Strategy("aria-label-contains", "[aria-label*={css}]"),
    Strategy("aria-label-exact", "[aria-label={css}]"),
    Strategy("title-contains", "[title*={css}]"),
    Strategy("title-exact", "[title={css}]"),
    Strategy("data-menu", "[data-menu*={css}]"),
    Strategy("data-title", "[data-title*={css}]"),
)


def split_menu_path(path: str) -> list[str]:
    """Split ``"系统管理 > 用户管理"`` into trimmed items; empty items are rejected."""
    if not path or not path.strip():
        raise InvalidStepError("Menu path must not be empty")
    items = [item.strip() for item in path.split(MENU_SEPARATOR)]
    if any(not item for item in items):
        raise InvalidStepError(f"Menu path {path!r} contains an empty item")
    return items


class MenuNavigator:
    """Clicks each item of a menu path in order, revealing hidden submenus by hover."""

    def __init__(self, page: Page, locator: ElementLocator, settle_ms: int = ACTION_DELAY_MS) -> None:
        self._page = page
        self._locator = locator
        self._settle_ms = settle_ms

    def click_menu(self, path: str) -> None:
        items = split_menu_path(path)
        for position, item in enumerate(items, 1):
            # Menus are re-queried from the document each time; the previous click may have re-rendered them
            root = self._locator.scopes.document()
            element = first_match(root, item, MENU_ITEM_CASCADE, what="menu item")
            try:
                visible = element.is_visible()
            except PlaywrightError:
                visible = False
            if not visible:
                logger.debug("Menu item %r hidden, hovering to reveal it", item)
                element.hover()
                settle(self._page, self._settle_ms)
            element.click()
            logger.info("Menu: clicked %r (%d/%d)", item, position, len(items))
            settle(self._page, EXPAND_DELAY_MS)
            if position < len(items):
                settle(self._page, self._settle_ms)

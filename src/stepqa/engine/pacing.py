"""Fixed settle delays between UI actions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.sync_api import Page


def settle(page: Page, delay_ms: int) -> None:
    """Pause so asynchronous re-renders can finish before the next action."""
    if delay_ms > 0:
        page.wait_for_timeout(delay_ms)

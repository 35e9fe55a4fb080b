"""Shared fixtures for StepQA unit tests.

Engine tests run against ``FakePage``: an in-memory stand-in for a
Playwright page where each selector string maps to a list of ``FakeNode``
elements.  Selectors nobody registered match nothing, so a test states
exactly which strategy of a cascade should hit.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from playwright.sync_api import Error as PlaywrightError


# ---------------------------------------------------------------------------
# Fake automation capability
# ---------------------------------------------------------------------------


class FakeNode:
    """An element: text, value, visibility, checked state and child selectors."""

    def __init__(
        self,
        name: str = "node",
        text: str = "",
        value: str = "",
        visible: bool = True,
        checked: bool = False,
        multiple: bool = False,
        labels: tuple[str, ...] = (),
        values: tuple[str, ...] = (),
        events: list | None = None,
    ) -> None:
        self.name = name
        self.text = text
        self.value = value
        self.visible = visible
        self.checked = checked
        self.multiple = multiple
        self.labels = labels  # option labels accepted by select_option
        self.values = values  # option values accepted by select_option
        self.events = events if events is not None else []
        self.children: dict[str, list[FakeNode]] = {}
        self.fail: dict[str, Exception] = {}  # method name -> exception to raise
        self.broken: dict[str, Exception] = {}  # selector -> query error

    def add(self, selector: str, *nodes: FakeNode) -> FakeNode:
        for node in nodes:
            node.adopt(self.events)
        self.children.setdefault(selector, []).extend(nodes)
        return self

    def adopt(self, events: list) -> None:
        """Share ``events`` with this node and everything below it."""
        self.events = events
        for nodes in self.children.values():
            for node in nodes:
                node.adopt(events)

    def _record(self, method: str, *args: Any) -> None:
        if method in self.fail:
            raise self.fail[method]
        self.events.append((self.name, method) + args)

    # Locator-ish
    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self.children.get(selector, []), self.broken.get(selector))

    def query_selector_all(self, selector: str) -> list[FakeNode]:
        return list(self.children.get(selector, []))

    # ElementHandle-ish
    def is_visible(self) -> bool:
        return self.visible

    def text_content(self) -> str:
        return self.text

    def input_value(self) -> str:
        return self.value

    def is_checked(self) -> bool:
        return self.checked

    def click(self, force: bool = False) -> None:
        self._record("click")

    def hover(self) -> None:
        self._record("hover")
        self.visible = True

    def scroll_into_view_if_needed(self) -> None:
        self._record("scroll")

    def fill(self, text: str) -> None:
        self._record("fill", text)
        self.value = text

    def check(self) -> None:
        self._record("check")
        self.checked = True

    def uncheck(self) -> None:
        self._record("uncheck")
        self.checked = False

    def select_option(self, label: list[str] | None = None, value: list[str] | None = None) -> list[str]:
        wanted, known = (label, self.labels) if label is not None else (value, self.values)
        if not known or any(w not in known for w in wanted):
            raise PlaywrightError(f"options not found: {wanted}")
        self._record("select", "label" if label is not None else "value", tuple(wanted))
        return list(wanted)

    def evaluate(self, expression: str) -> Any:
        if "multiple" in expression:
            return self.multiple
        if "options" in expression:
            return list(self.labels)
        return self.value

    def screenshot(self, path: str) -> None:
        self._record("screenshot")
        Path(path).write_bytes(b"png")

    def element_handle(self) -> FakeNode:
        return self

    def __repr__(self) -> str:
        return f"FakeNode({self.name!r})"


class FakeLocator:
    """A query result; ``error`` makes every access raise (e.g. invalid selector)."""

    def __init__(self, nodes: list[FakeNode], error: Exception | None = None) -> None:
        self._nodes = nodes
        self._error = error

    def _check(self) -> None:
        if self._error is not None:
            raise self._error

    def count(self) -> int:
        self._check()
        return len(self._nodes)

    def nth(self, index: int) -> FakeLocator:
        self._check()
        return FakeLocator(self._nodes[index : index + 1])

    @property
    def first(self) -> FakeLocator:
        return FakeLocator(self._nodes[:1], self._error)

    def _node(self) -> FakeNode:
        self._check()
        if not self._nodes:
            raise PlaywrightError("no element")
        return self._nodes[0]

    def is_visible(self) -> bool:
        return self._node().is_visible()

    def text_content(self) -> str:
        return self._node().text_content()

    def element_handle(self) -> FakeNode:
        return self._node()

    def locator(self, selector: str) -> FakeLocator:
        self._check()
        found: list[FakeNode] = []
        for node in self._nodes:
            if selector in node.broken:
                return FakeLocator([], node.broken[selector])
            found.extend(node.children.get(selector, []))
        return FakeLocator(found)


class FakeKeyboard:
    def __init__(self, events: list) -> None:
        self.events = events

    def down(self, key: str) -> None:
        self.events.append(("keyboard", "down", key))

    def up(self, key: str) -> None:
        self.events.append(("keyboard", "up", key))


class FakePage:
    """Page whose ``body`` holds the document-level selector registry."""

    def __init__(self) -> None:
        self.events: list = []
        self.body = FakeNode("body", events=self.events)
        self.top: dict[str, list[FakeNode]] = {}  # page-level probes (dialog, main)
        self.broken: dict[str, Exception] = {}
        self.keyboard = FakeKeyboard(self.events)
        self.screenshot_error: Exception | None = None
        self.goto_error: Exception | None = None
        self.waits: list[int] = []

    def add(self, selector: str, *nodes: FakeNode) -> FakePage:
        self.body.add(selector, *nodes)
        return self

    def add_top(self, selector: str, *nodes: FakeNode) -> FakePage:
        for node in nodes:
            node.adopt(self.events)
        self.top.setdefault(selector, []).extend(nodes)
        return self

    def locator(self, selector: str) -> FakeLocator:
        if selector in self.broken:
            return FakeLocator([], self.broken[selector])
        if selector == "body":
            return FakeLocator([self.body])
        return FakeLocator(self.top.get(selector, []))

    def goto(self, url: str, wait_until: str | None = None) -> None:
        if self.goto_error is not None:
            raise self.goto_error
        self.events.append(("page", "goto", url, wait_until))

    def wait_for_timeout(self, timeout: float) -> None:
        self.waits.append(timeout)

    def screenshot(self, path: str) -> None:
        if self.screenshot_error is not None:
            raise self.screenshot_error
        self.events.append(("page", "screenshot"))
        Path(path).write_bytes(b"png")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def settled(page: FakePage) -> list[int]:
    """Settle delays (ms) the engine asked the page to wait."""
    return page.waits


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a valid StepQA config as a string."""
    return """\
browser: firefox
headless: true
timeout: 8000
retry_captcha: 5
ignore_https_errors: true
keep_browser_open: false
captcha_backend: tesseract
viewport:
  width: 1920
  height: 1080
screenshots_dir: out/errors
captcha_dir: out/captcha
videos_dir: out/videos
"""


@pytest.fixture
def login_suite() -> list[dict[str, Any]]:
    return [
        {
            "name": "login",
            "steps": [
                {"action": "goto", "url": "http://localhost:8080/login"},
                {"action": "input", "selector": {"type": "field", "value": "用户名"}, "text": "admin"},
                {"action": "click", "selector": {"type": "button", "value": "登录"}},
            ],
        },
        {
            "name": "menu",
            "steps": [{"action": "menu_click", "menu_path": "系统管理 > 用户管理"}],
        },
    ]


@pytest.fixture
def suite_file(tmp_path: Path, login_suite: list[dict[str, Any]]) -> Path:
    path = tmp_path / "login.json"
    path.write_text(json.dumps(login_suite, ensure_ascii=False), encoding="utf-8")
    return path

"""StepQA Browser Session — owns the Playwright browser, context and page.

One session per run.  The interpreter drives its single page exclusively;
nothing else opens competing pages.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from stepqa.config import StepQAConfig
from stepqa.engine.errors import StepQAError

logger = logging.getLogger("stepqa.engine.browser")


class BrowserSession:
    """Explicit lifecycle for the automation handles.

    Usage::

        with BrowserSession.start(config) as session:
            StepRunner(session.page, config).run_suite(cases)
    """

    def __init__(self, config: StepQAConfig) -> None:
        self._config = config
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None

    # -- Lifecycle -----------------------------------------------------------

    @classmethod
    def start(cls, config: StepQAConfig) -> BrowserSession:
        """Launch the configured browser and open one page."""
        session = cls(config)
        session.open()
        return session

    def open(self) -> None:
        from playwright.sync_api import sync_playwright

        config = self._config
        self._playwright = sync_playwright().start()
        try:
            browser_type = getattr(self._playwright, config.browser)
            launch_args = ["--ignore-certificate-errors"] if config.ignore_https_errors else []
            self._browser = browser_type.launch(headless=config.headless, args=launch_args)

            context_options: dict[str, Any] = {
                "viewport": {"width": config.viewport[0], "height": config.viewport[1]},
                "ignore_https_errors": config.ignore_https_errors,
            }
            if config.videos_dir is not None:
                config.videos_dir.mkdir(parents=True, exist_ok=True)
                context_options["record_video_dir"] = str(config.videos_dir)
            self._context = self._browser.new_context(**context_options)
            self._page = self._context.new_page()
            self._page.set_default_timeout(config.timeout)
        except Exception:
            self.stop()
            raise
        logger.info(
            "Browser started: %s (headless=%s, timeout=%dms)", config.browser, config.headless, config.timeout
        )

    def stop(self) -> None:
        """Close context, browser and Playwright; safe to call more than once."""
        try:
            if self._context is not None:
                self._context.close()
        except Exception as exc:
            logger.debug("Context close failed: %s", exc)
        try:
            if self._browser is not None:
                self._browser.close()
        except Exception as exc:
            logger.debug("Browser close failed: %s", exc)
        try:
            if self._playwright is not None:
                self._playwright.stop()
        except Exception as exc:
            logger.debug("Playwright stop failed: %s", exc)
        self._context = None
        self._browser = None
        self._playwright = None
        self._page = None

    def __enter__(self) -> BrowserSession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    # -- Access --------------------------------------------------------------

    @property
    def page(self) -> Any:
        if self._page is None:
            raise StepQAError("Browser session is not started")
        return self._page

    def screenshot(self, directory: Path, prefix: str = "error") -> Path:
        """Write a full-viewport PNG named ``<prefix>_<timestamp>.png`` and return its path."""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{prefix}_{int(time.time() * 1000)}.png"
        self.page.screenshot(path=str(path))
        return path

"""StepQA configuration management."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from stepqa.models import (
    ACTION_DELAY_MS,
    CAPTCHA_BACKENDS,
    DEFAULT_BROWSER,
    DEFAULT_CAPTCHA_DIR,
    DEFAULT_RETRY_CAPTCHA,
    DEFAULT_SCREENSHOTS_DIR,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_VIEWPORT,
    STEP_DELAY_MS,
    SUPPORTED_BROWSERS,
)

logger = logging.getLogger("stepqa.config")


class StepQAConfigError(Exception):
    """Raised when configuration is invalid or unreadable."""

    pass


@dataclass
class StepQAConfig:
    """Configuration for a StepQA run."""

    # Browser
    browser: str = DEFAULT_BROWSER
    headless: bool = False
    timeout: int = DEFAULT_TIMEOUT_MS  # ms, applied as the page default timeout
    viewport: tuple[int, int] = DEFAULT_VIEWPORT
    ignore_https_errors: bool = False
    keep_browser_open: bool = False

    # Captcha
    retry_captcha: int = DEFAULT_RETRY_CAPTCHA
    captcha_backend: str = "disabled"

    # Pacing
    step_delay_ms: int = STEP_DELAY_MS
    action_delay_ms: int = ACTION_DELAY_MS

    # Paths
    project_dir: Path = field(default_factory=Path.cwd)
    screenshots_dir: Path = field(default_factory=lambda: Path(DEFAULT_SCREENSHOTS_DIR))
    captcha_dir: Path = field(default_factory=lambda: Path(DEFAULT_CAPTCHA_DIR))
    videos_dir: Path | None = None

    @classmethod
    def from_file(cls, config_path: Path) -> StepQAConfig:
        """Load config from a YAML file.

        A missing file is not an error: the run proceeds with defaults, the
        same way it does when no ``-c`` option is given.
        """
        if not config_path.exists():
            logger.info("Config file %s not found, using defaults", config_path)
            config = cls()
            config.project_dir = config_path.parent
            config.screenshots_dir = config.project_dir / DEFAULT_SCREENSHOTS_DIR
            config.captcha_dir = config.project_dir / DEFAULT_CAPTCHA_DIR
            return config
        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise StepQAConfigError(f"Failed to read config file {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StepQAConfigError(f"Config file must be a YAML mapping: {config_path}")
        return cls._from_dict(data, config_path.parent)

    @classmethod
    def _from_dict(cls, data: dict[str, Any], project_dir: Path) -> StepQAConfig:
        """Create config from a dictionary."""
        config = cls()
        config.project_dir = project_dir

        # Zero or empty values fall back to defaults
        browser = str(data.get("browser") or DEFAULT_BROWSER).lower()
        if browser not in SUPPORTED_BROWSERS:
            logger.warning("Unknown browser %r, falling back to %s", browser, DEFAULT_BROWSER)
            browser = DEFAULT_BROWSER
        config.browser = browser

        try:
            config.timeout = int(data.get("timeout") or DEFAULT_TIMEOUT_MS)
            config.retry_captcha = int(data.get("retry_captcha") or DEFAULT_RETRY_CAPTCHA)
            if "step_delay_ms" in data:
                config.step_delay_ms = int(data["step_delay_ms"])
            if "action_delay_ms" in data:
                config.action_delay_ms = int(data["action_delay_ms"])
        except (TypeError, ValueError) as exc:
            raise StepQAConfigError(f"Invalid numeric value in config: {exc}") from exc

        for key in ("headless", "ignore_https_errors", "keep_browser_open"):
            if key in data:
                value = data[key]
                if not isinstance(value, bool):
                    raise StepQAConfigError(f"Config option '{key}' must be true or false, got {value!r}")
                setattr(config, key, value)

        if "viewport" in data:
            vp = data["viewport"]
            if isinstance(vp, dict):
                config.viewport = (vp.get("width", DEFAULT_VIEWPORT[0]), vp.get("height", DEFAULT_VIEWPORT[1]))

        backend = str(data.get("captcha_backend") or "disabled").lower()
        if backend not in CAPTCHA_BACKENDS:
            raise StepQAConfigError(
                f"Unknown captcha_backend: {backend!r}\n\nValid backends: {', '.join(CAPTCHA_BACKENDS)}"
            )
        config.captcha_backend = backend

        config.screenshots_dir = project_dir / data.get("screenshots_dir", DEFAULT_SCREENSHOTS_DIR)
        config.captcha_dir = project_dir / data.get("captcha_dir", DEFAULT_CAPTCHA_DIR)
        if data.get("videos_dir"):
            config.videos_dir = project_dir / data["videos_dir"]

        return config

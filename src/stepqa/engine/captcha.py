"""StepQA Captcha — screenshot an image captcha, recognize it, type the answer.

Recognition is a pluggable capability.  ``TesseractCaptchaSolver`` runs OCR
through pytesseract (install the ``ocr`` extra plus the Tesseract binary);
``DisabledCaptchaSolver`` always fails, so a suite with a captcha step stops
with a clear message instead of typing garbage.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from playwright.sync_api import Error as PlaywrightError

from stepqa.engine.errors import CaptchaError, NotFoundError
from stepqa.engine.pacing import settle
from stepqa.engine.selectors import ElementLocator, SelectorDescriptor
from stepqa.models import ACTION_DELAY_MS, DEFAULT_RETRY_CAPTCHA

if TYPE_CHECKING:
    from playwright.sync_api import ElementHandle

logger = logging.getLogger("stepqa.engine.captcha")

CAPTCHA_WHITELIST = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Well-known captcha image and input locations, probed in order by auto mode
AUTO_IMAGE_SELECTORS = (
    SelectorDescriptor("css", "img[src*='captcha']"),
    SelectorDescriptor("css", "img[src*='verify']"),
    SelectorDescriptor("css", "img[alt*='验证码']"),
    SelectorDescriptor("css", "img[alt*='captcha']"),
    SelectorDescriptor("css", ".captcha img"),
    SelectorDescriptor("css", ".verify-code img"),
    SelectorDescriptor("xpath", "//img[contains(@src, 'captcha')]"),
    SelectorDescriptor("xpath", "//img[contains(@src, 'verify')]"),
)

AUTO_INPUT_SELECTORS = (
    SelectorDescriptor("text", "验证码"),
    SelectorDescriptor("text", "请输入验证码"),
    SelectorDescriptor("css", "input[name*='captcha']"),
    SelectorDescriptor("css", "input[name*='verify']"),
    SelectorDescriptor("css", "input[placeholder*='验证码']"),
    SelectorDescriptor("css", "input[placeholder*='captcha']"),
    SelectorDescriptor("xpath", "//input[contains(@placeholder, '验证码')]"),
    SelectorDescriptor("xpath", "//input[contains(@name, 'captcha')]"),
)


@runtime_checkable
class CaptchaSolver(Protocol):
    """Turns a captcha image file into its text."""

    def solve(self, image_path: Path) -> str: ...


class TesseractCaptchaSolver:
    """OCR via pytesseract, restricted to ASCII letters and digits."""

    def __init__(self, whitelist: str = CAPTCHA_WHITELIST) -> None:
        self._whitelist = whitelist

    def solve(self, image_path: Path) -> str:
        try:
            import pytesseract
            from PIL import Image
        except ImportError as exc:
            raise CaptchaError(
                "Captcha OCR requires pytesseract and Pillow.\n\nInstall with: pip install 'stepqa[ocr]'"
            ) from exc

        try:
            with Image.open(image_path) as img:
                text = pytesseract.image_to_string(img, config=f"-c tessedit_char_whitelist={self._whitelist}")
        except pytesseract.TesseractNotFoundError as exc:
            raise CaptchaError("Tesseract binary not found on PATH") from exc
        except pytesseract.TesseractError as exc:
            raise CaptchaError(f"Tesseract failed on {image_path}: {exc}") from exc
        except OSError as exc:
            raise CaptchaError(f"Cannot read captcha image {image_path}: {exc}") from exc
        return text.strip()


class DisabledCaptchaSolver:
    """Solver used when no OCR backend is configured."""

    def solve(self, image_path: Path) -> str:
        raise CaptchaError(
            "Captcha recognition is disabled.\n\nSet captcha_backend: tesseract in your config to enable it."
        )


def build_captcha_solver(backend: str) -> CaptchaSolver:
    """Pick the solver named by ``captcha_backend``."""
    if backend == "tesseract":
        return TesseractCaptchaSolver()
    if backend == "disabled":
        return DisabledCaptchaSolver()
    raise CaptchaError(f"Unknown captcha backend: {backend!r}")


class CaptchaHandler:
    """Locates captcha image and input, runs the solver, fills the answer."""

    def __init__(
        self,
        locator: ElementLocator,
        solver: CaptchaSolver,
        captcha_dir: Path,
        attempts: int = DEFAULT_RETRY_CAPTCHA,
        settle_ms: int = ACTION_DELAY_MS,
    ) -> None:
        self._locator = locator
        self._solver = solver
        self._captcha_dir = captcha_dir
        self._attempts = max(1, attempts)
        self._settle_ms = settle_ms

    def solve_and_input(self, image: SelectorDescriptor, target: SelectorDescriptor) -> str:
        """Recognize the captcha at ``image`` and type it into ``target``.

        OCR is retried up to ``attempts`` times while it returns empty text;
        each attempt takes a fresh screenshot.

        Returns:
            The recognized text.
        """
        image_element = self._locator.locate(image)
        self._captcha_dir.mkdir(parents=True, exist_ok=True)

        text = ""
        for attempt in range(1, self._attempts + 1):
            path = self._captcha_dir / f"captcha_{int(time.time() * 1000)}_{attempt}.png"
            image_element.screenshot(path=str(path))
            text = self._solver.solve(path)
            if text:
                break
            logger.warning("Captcha OCR returned empty text (attempt %d/%d)", attempt, self._attempts)
        if not text:
            raise CaptchaError(f"Captcha OCR returned empty text after {self._attempts} attempts")

        logger.info("Captcha recognized: %s", text)
        self._locator.locate(target).fill(text)
        settle(self._locator.page, self._settle_ms)
        return text

    def auto_solve(self) -> str:
        """Find a visible captcha image and input by well-known patterns, then solve."""
        image = self._first_visible(AUTO_IMAGE_SELECTORS, "captcha image")
        target = self._first_visible(AUTO_INPUT_SELECTORS, "captcha input")
        return self.solve_and_input(image, target)

    def _first_visible(self, candidates: tuple[SelectorDescriptor, ...], what: str) -> SelectorDescriptor:
        for descriptor in candidates:
            try:
                element: ElementHandle = self._locator.locate(descriptor)
                if element.is_visible():
                    logger.debug("Auto-detected %s via %s", what, descriptor)
                    return descriptor
            except (NotFoundError, PlaywrightError) as exc:
                logger.debug("No %s at %s: %s", what, descriptor, exc)
                continue
        raise NotFoundError(f"No visible {what} found")

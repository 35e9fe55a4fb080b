"""Unit tests for stepqa.engine.captcha — solver selection, retries and auto-detection."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeNode, FakePage
from stepqa.engine.captcha import (
    CaptchaHandler,
    CaptchaSolver,
    DisabledCaptchaSolver,
    TesseractCaptchaSolver,
    build_captcha_solver,
)
from stepqa.engine.errors import CaptchaError, NotFoundError
from stepqa.engine.selectors import ElementLocator, SelectorDescriptor


class ScriptedSolver:
    """Returns queued answers one per call and remembers the image paths."""

    def __init__(self, *answers: str) -> None:
        self.answers = list(answers)
        self.paths: list[Path] = []

    def solve(self, image_path: Path) -> str:
        self.paths.append(image_path)
        return self.answers.pop(0)


IMAGE = SelectorDescriptor("css", "img.code")
INPUT = SelectorDescriptor("css", "input.code")


@pytest.fixture
def captcha_page(page: FakePage) -> FakePage:
    page.add("img.code", FakeNode("image"))
    page.add("input.code", FakeNode("input"))
    return page


def _handler(page: FakePage, solver, tmp_path: Path, attempts: int = 3) -> CaptchaHandler:
    return CaptchaHandler(ElementLocator(page), solver, tmp_path / "captcha", attempts=attempts)


# ---------------------------------------------------------------------------
# 1. Solvers
# ---------------------------------------------------------------------------


class TestSolvers:
    def test_factory_tesseract(self):
        assert isinstance(build_captcha_solver("tesseract"), TesseractCaptchaSolver)

    def test_factory_disabled(self):
        assert isinstance(build_captcha_solver("disabled"), DisabledCaptchaSolver)

    def test_factory_unknown_backend(self):
        with pytest.raises(CaptchaError, match="Unknown captcha backend"):
            build_captcha_solver("cloud")

    def test_disabled_solver_always_fails(self, tmp_path: Path):
        with pytest.raises(CaptchaError, match="disabled"):
            DisabledCaptchaSolver().solve(tmp_path / "x.png")

    def test_solvers_satisfy_protocol(self):
        assert isinstance(TesseractCaptchaSolver(), CaptchaSolver)
        assert isinstance(ScriptedSolver(), CaptchaSolver)

    def test_tesseract_failure_becomes_captcha_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        pytesseract = pytest.importorskip("pytesseract")
        image_module = pytest.importorskip("PIL.Image")
        path = tmp_path / "code.png"
        image_module.new("RGB", (60, 20), "white").save(path)

        def fail(*args, **kwargs):
            raise pytesseract.TesseractError(1, "bad image")

        monkeypatch.setattr(pytesseract, "image_to_string", fail)
        with pytest.raises(CaptchaError, match="Tesseract failed"):
            TesseractCaptchaSolver().solve(path)


# ---------------------------------------------------------------------------
# 2. Solve and input
# ---------------------------------------------------------------------------


class TestSolveAndInput:
    def test_types_recognized_text(self, captcha_page: FakePage, tmp_path: Path):
        text = _handler(captcha_page, ScriptedSolver("a1b2"), tmp_path).solve_and_input(IMAGE, INPUT)
        assert text == "a1b2"
        assert ("input", "fill", "a1b2") in captcha_page.events

    def test_screenshot_lands_in_captcha_dir(self, captcha_page: FakePage, tmp_path: Path):
        solver = ScriptedSolver("x9")
        _handler(captcha_page, solver, tmp_path).solve_and_input(IMAGE, INPUT)
        saved = solver.paths[0]
        assert saved.parent == tmp_path / "captcha"
        assert saved.name.startswith("captcha_") and saved.name.endswith("_1.png")
        assert saved.exists()

    def test_retries_while_text_is_empty(self, captcha_page: FakePage, tmp_path: Path):
        solver = ScriptedSolver("", "", "k7")
        assert _handler(captcha_page, solver, tmp_path).solve_and_input(IMAGE, INPUT) == "k7"
        assert len(solver.paths) == 3
        assert [e for e in captcha_page.events if e[1] == "screenshot"] == [("image", "screenshot")] * 3

    def test_gives_up_after_attempts(self, captcha_page: FakePage, tmp_path: Path):
        solver = ScriptedSolver("", "")
        with pytest.raises(CaptchaError, match="after 2 attempts"):
            _handler(captcha_page, solver, tmp_path, attempts=2).solve_and_input(IMAGE, INPUT)
        assert not [e for e in captcha_page.events if e[1] == "fill"]

    def test_solver_error_propagates(self, captcha_page: FakePage, tmp_path: Path):
        with pytest.raises(CaptchaError):
            _handler(captcha_page, DisabledCaptchaSolver(), tmp_path).solve_and_input(IMAGE, INPUT)

    def test_fill_settles_on_the_page(self, captcha_page: FakePage, settled: list[int], tmp_path: Path):
        _handler(captcha_page, ScriptedSolver("ab12"), tmp_path).solve_and_input(IMAGE, INPUT)
        assert settled == [200]

    def test_missing_image(self, page: FakePage, tmp_path: Path):
        with pytest.raises(NotFoundError):
            _handler(page, ScriptedSolver("x"), tmp_path).solve_and_input(IMAGE, INPUT)


# ---------------------------------------------------------------------------
# 3. Auto-detection
# ---------------------------------------------------------------------------


class TestAutoSolve:
    def test_well_known_patterns(self, page: FakePage, tmp_path: Path):
        page.add("img[src*='captcha']", FakeNode("image"))
        page.add("input[name*='captcha']", FakeNode("input"))
        assert _handler(page, ScriptedSolver("q1"), tmp_path).auto_solve() == "q1"
        assert ("input", "fill", "q1") in page.events

    def test_hidden_image_is_skipped(self, page: FakePage, tmp_path: Path):
        page.add("img[src*='captcha']", FakeNode("stale", visible=False))
        page.add("img[alt*='验证码']", FakeNode("image"))
        page.add("input[name*='verify']", FakeNode("input"))
        _handler(page, ScriptedSolver("z"), tmp_path).auto_solve()
        assert ("image", "screenshot") in page.events
        assert ("stale", "screenshot") not in page.events

    def test_no_captcha_on_page(self, page: FakePage, tmp_path: Path):
        with pytest.raises(NotFoundError, match="captcha image"):
            _handler(page, ScriptedSolver("z"), tmp_path).auto_solve()

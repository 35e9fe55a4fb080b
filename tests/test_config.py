"""Unit tests for stepqa.config — StepQAConfig loading and defaults."""

from __future__ import annotations

from pathlib import Path

import pytest

from stepqa.config import StepQAConfig, StepQAConfigError
from stepqa.models import (
    ACTION_DELAY_MS,
    DEFAULT_BROWSER,
    DEFAULT_CAPTCHA_DIR,
    DEFAULT_RETRY_CAPTCHA,
    DEFAULT_SCREENSHOTS_DIR,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_VIEWPORT,
    STEP_DELAY_MS,
)


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "stepqa.yaml"
    path.write_text(content, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# 1. Default values
# ---------------------------------------------------------------------------


class TestStepQAConfigDefaults:
    """StepQAConfig should have sensible defaults for every field."""

    def test_browser_defaults(self):
        cfg = StepQAConfig()
        assert cfg.browser == DEFAULT_BROWSER
        assert cfg.headless is False
        assert cfg.viewport == DEFAULT_VIEWPORT

    def test_timeouts_and_retries(self):
        cfg = StepQAConfig()
        assert cfg.timeout == DEFAULT_TIMEOUT_MS
        assert cfg.retry_captcha == DEFAULT_RETRY_CAPTCHA

    def test_captcha_is_disabled(self):
        assert StepQAConfig().captcha_backend == "disabled"

    def test_pacing(self):
        cfg = StepQAConfig()
        assert cfg.step_delay_ms == STEP_DELAY_MS
        assert cfg.action_delay_ms == ACTION_DELAY_MS

    def test_no_video_recording(self):
        assert StepQAConfig().videos_dir is None


# ---------------------------------------------------------------------------
# 2. Loading from YAML
# ---------------------------------------------------------------------------


class TestFromFile:
    def test_full_config(self, tmp_path: Path, sample_config_yaml: str):
        cfg = StepQAConfig.from_file(_write(tmp_path, sample_config_yaml))
        assert cfg.browser == "firefox"
        assert cfg.headless is True
        assert cfg.timeout == 8000
        assert cfg.retry_captcha == 5
        assert cfg.ignore_https_errors is True
        assert cfg.captcha_backend == "tesseract"
        assert cfg.viewport == (1920, 1080)

    def test_paths_are_relative_to_config_dir(self, tmp_path: Path, sample_config_yaml: str):
        cfg = StepQAConfig.from_file(_write(tmp_path, sample_config_yaml))
        assert cfg.project_dir == tmp_path
        assert cfg.screenshots_dir == tmp_path / "out/errors"
        assert cfg.captcha_dir == tmp_path / "out/captcha"
        assert cfg.videos_dir == tmp_path / "out/videos"

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        cfg = StepQAConfig.from_file(tmp_path / "absent.yaml")
        assert cfg.browser == DEFAULT_BROWSER
        assert cfg.screenshots_dir == tmp_path / DEFAULT_SCREENSHOTS_DIR
        assert cfg.captcha_dir == tmp_path / DEFAULT_CAPTCHA_DIR

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        cfg = StepQAConfig.from_file(_write(tmp_path, ""))
        assert cfg.timeout == DEFAULT_TIMEOUT_MS

    def test_zero_values_fall_back_to_defaults(self, tmp_path: Path):
        cfg = StepQAConfig.from_file(_write(tmp_path, "timeout: 0\nretry_captcha: 0\n"))
        assert cfg.timeout == DEFAULT_TIMEOUT_MS
        assert cfg.retry_captcha == DEFAULT_RETRY_CAPTCHA

    def test_explicit_zero_delays_are_kept(self, tmp_path: Path):
        cfg = StepQAConfig.from_file(_write(tmp_path, "step_delay_ms: 0\naction_delay_ms: 0\n"))
        assert (cfg.step_delay_ms, cfg.action_delay_ms) == (0, 0)

    def test_unknown_browser_falls_back(self, tmp_path: Path, caplog):
        cfg = StepQAConfig.from_file(_write(tmp_path, "browser: netscape\n"))
        assert cfg.browser == DEFAULT_BROWSER
        assert "netscape" in caplog.text

    def test_browser_name_is_case_insensitive(self, tmp_path: Path):
        assert StepQAConfig.from_file(_write(tmp_path, "browser: WebKit\n")).browser == "webkit"


# ---------------------------------------------------------------------------
# 3. Errors
# ---------------------------------------------------------------------------


class TestConfigErrors:
    def test_invalid_yaml(self, tmp_path: Path):
        with pytest.raises(StepQAConfigError, match="Failed to read"):
            StepQAConfig.from_file(_write(tmp_path, "browser: [unclosed\n"))

    def test_non_mapping(self, tmp_path: Path):
        with pytest.raises(StepQAConfigError, match="YAML mapping"):
            StepQAConfig.from_file(_write(tmp_path, "- a\n- b\n"))

    def test_non_numeric_timeout(self, tmp_path: Path):
        with pytest.raises(StepQAConfigError, match="Invalid numeric"):
            StepQAConfig.from_file(_write(tmp_path, "timeout: soon\n"))

    def test_unknown_captcha_backend(self, tmp_path: Path):
        with pytest.raises(StepQAConfigError, match="Unknown captcha_backend"):
            StepQAConfig.from_file(_write(tmp_path, "captcha_backend: cloud\n"))

    def test_quoted_boolean_is_rejected(self, tmp_path: Path):
        with pytest.raises(StepQAConfigError, match="'headless' must be true or false"):
            StepQAConfig.from_file(_write(tmp_path, 'headless: "false"\n'))

    def test_yaml_booleans_are_accepted(self, tmp_path: Path):
        config = StepQAConfig.from_file(_write(tmp_path, "headless: false\nkeep_browser_open: yes\n"))
        assert config.headless is False
        assert config.keep_browser_open is True

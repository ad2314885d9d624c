"""Tests for settings, spider tuning and browser/crawl options."""

import json

import pytest
from pydantic import ValidationError

from pagespider.browser_config import BrowserConfig, CrawlerOption, FAST_CONFIG, FULL_CONFIG
from pagespider.config import SpiderTuning


class TestSpiderTuning:
    """Tests for SpiderTuning."""

    def test_defaults(self):
        tuning = SpiderTuning()
        assert tuning.settle_delay_ms == 5000
        assert tuning.navigation_interrupted_markers == ("navigation",)
        assert tuning.run_grace_ms > 0

    @pytest.mark.parametrize("message,expected", [
        ("Navigation interrupted by another navigation", True),
        ("page.goto: net::ERR_ABORTED; maybe frame was detached? NAVIGATION", True),
        ("Timeout 30000ms exceeded.", False),
        ("net::ERR_NAME_NOT_RESOLVED", False),
    ])
    def test_navigation_interrupted_classification(self, message, expected):
        """Test markers match case-insensitively anywhere in the message."""
        assert SpiderTuning().is_navigation_interrupted(Exception(message)) is expected

    @pytest.mark.parametrize("page_timeout,margin,expected", [
        (30000, 1000, 29000),
        (1500, 1000, 750),
        (100, 0, 100),
        (1, 1000, 1),
    ])
    def test_navigation_timeout_below_page_timeout(self, page_timeout, margin, expected):
        """Test navigation gives up before the forced finish, within a usable window."""
        tuning = SpiderTuning(navigation_margin_ms=margin)
        assert tuning.navigation_timeout_ms(page_timeout) == expected

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PAGESPIDER_TUNING_SETTLE_DELAY_MS", "250")
        monkeypatch.setenv("PAGESPIDER_TUNING_NAVIGATION_INTERRUPTED_MARKERS", "navigation, frame was detached ,")
        monkeypatch.setenv("PAGESPIDER_TUNING_RUN_GRACE_MS", "not-a-number")

        tuning = SpiderTuning.from_env()

        assert tuning.settle_delay_ms == 250
        assert tuning.navigation_interrupted_markers == ("navigation", "frame was detached")
        assert tuning.run_grace_ms == SpiderTuning().run_grace_ms

    def test_file_roundtrip(self, tmp_path):
        """Test save_to_file output is accepted by from_file."""
        path = tmp_path / "tuning.json"
        original = SpiderTuning(settle_delay_ms=10, navigation_interrupted_markers=("moved",), run_grace_ms=5)

        original.save_to_file(str(path))
        loaded = SpiderTuning.from_file(str(path))

        assert json.loads(path.read_text())["tuning"]["navigation_interrupted_markers"] == ["moved"]
        assert loaded == original

    def test_from_missing_file_uses_defaults(self, tmp_path):
        assert SpiderTuning.from_file(str(tmp_path / "missing.json")) == SpiderTuning()

    def test_from_flat_file(self, tmp_path):
        """Test a file without the 'tuning' wrapper is accepted."""
        path = tmp_path / "flat.json"
        path.write_text(json.dumps({"settle_delay_ms": 1}))

        assert SpiderTuning.from_file(str(path)).settle_delay_ms == 1


class TestBrowserConfig:
    """Tests for BrowserConfig."""

    def test_defaults(self):
        config = BrowserConfig()
        assert config.headless is True
        assert config.browser_type == "chromium"
        assert config.block_resources == []

    def test_presets(self):
        assert "image" in FAST_CONFIG.block_resources
        assert FULL_CONFIG.headless is False

    def test_rejects_unknown_engine(self):
        with pytest.raises(ValidationError):
            BrowserConfig(browser_type="netscape")

    def test_rejects_out_of_range_timeout(self):
        with pytest.raises(ValidationError):
            BrowserConfig(timeout=10)

    def test_assignment_validated(self):
        config = BrowserConfig()
        with pytest.raises(ValidationError):
            config.pool_size = 0


class TestCrawlerOption:
    """Tests for CrawlerOption."""

    def test_optional_fields_default_to_none(self):
        option = CrawlerOption(page_timeout=1000)
        assert option.cookies is None
        assert option.allow_redirect is None

    def test_page_timeout_required_and_positive(self):
        with pytest.raises(ValidationError):
            CrawlerOption()
        with pytest.raises(ValidationError):
            CrawlerOption(page_timeout=0)

    def test_read_only(self):
        option = CrawlerOption(page_timeout=1000)
        with pytest.raises(ValidationError):
            option.page_timeout = 5

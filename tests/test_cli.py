"""Tests for the command-line interface."""

import json
import logging
import subprocess
from unittest.mock import AsyncMock, patch

import pytest

from pagespider import cli
from pagespider.logging_config import setup_logging
from pagespider.models import DiscoveredRequest


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = cli.parse_args(["https://example.com/"])
        assert args.url == "https://example.com/"
        assert args.timeout == 30000
        assert args.allow_redirect is False
        assert args.block == []
        assert args.format == "jsonl"
        assert args.settle_delay is None

    def test_options(self):
        args = cli.parse_args([
            "https://example.com/",
            "--timeout", "5000",
            "--allow-redirect",
            "--headed",
            "--browser", "firefox",
            "--block", "image", "font",
            "--settle-delay", "0",
            "--seed", "4",
            "--format", "json",
        ])
        assert args.timeout == 5000
        assert args.allow_redirect is True
        assert args.headed is True
        assert args.browser == "firefox"
        assert args.block == ["image", "font"]
        assert args.settle_delay == 0
        assert args.seed == 4
        assert args.format == "json"


class TestLoadCookies:
    """Tests for cookie file loading."""

    def test_bare_list(self, tmp_path):
        path = tmp_path / "cookies.json"
        path.write_text(json.dumps([{"name": "sid", "value": "1"}]))
        assert cli.load_cookies(str(path)) == [{"name": "sid", "value": "1"}]

    def test_wrapped_list(self, tmp_path):
        path = tmp_path / "cookies.json"
        path.write_text(json.dumps({"cookies": [{"name": "sid", "value": "1"}]}))
        assert cli.load_cookies(str(path)) == [{"name": "sid", "value": "1"}]

    def test_invalid_payload(self, tmp_path):
        path = tmp_path / "cookies.json"
        path.write_text(json.dumps("sid=1"))
        with pytest.raises(ValueError):
            cli.load_cookies(str(path))


class TestBuildTuning:
    """Tests for tuning assembly."""

    def test_settle_delay_override(self):
        args = cli.parse_args(["https://example.com/", "--settle-delay", "12"])
        assert cli.build_tuning(args).settle_delay_ms == 12

    def test_tuning_file(self, tmp_path):
        path = tmp_path / "tuning.json"
        path.write_text(json.dumps({"tuning": {"run_grace_ms": 7}}))
        args = cli.parse_args(["https://example.com/", "--tuning-file", str(path)])
        assert cli.build_tuning(args).run_grace_ms == 7


class TestOutput:
    """Tests for printing and the entry point."""

    def test_print_jsonl(self, capsys):
        requests = [
            DiscoveredRequest.from_url("https://example.com/a"),
            DiscoveredRequest.from_url("https://example.com/b.js", "GET", "script"),
        ]
        cli.print_requests(requests, "jsonl")

        lines = capsys.readouterr().out.strip().splitlines()
        assert [json.loads(line)["url"] for line in lines] == [
            "https://example.com/a",
            "https://example.com/b.js",
        ]

    def test_print_json(self, capsys):
        cli.print_requests([DiscoveredRequest.from_url("https://example.com/a")], "json")

        data = json.loads(capsys.readouterr().out)
        assert data[0]["resourceType"] == "document"

    def test_main_success(self, capsys):
        requests = [DiscoveredRequest.from_url("https://example.com/a")]
        with patch.object(cli, "render", AsyncMock(return_value=requests)), \
                patch.object(cli, "setup_logging"):
            exit_code = cli.main(["https://example.com/"])

        assert exit_code == 0
        assert "https://example.com/a" in capsys.readouterr().out

    def test_main_failure(self):
        with patch.object(cli, "render", AsyncMock(side_effect=RuntimeError("no browser"))), \
                patch.object(cli, "setup_logging"):
            exit_code = cli.main(["https://example.com/"])

        assert exit_code == 1


class TestInstallBrowsers:
    """Tests for the browser install helper."""

    def test_success(self):
        from pagespider import scripts

        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="done", stderr="")
        with patch.object(scripts.subprocess, "run", return_value=completed) as run:
            assert scripts.install_browsers("firefox") == 0

        command = run.call_args.args[0]
        assert command[1:] == ["-m", "playwright", "install", "firefox"]

    def test_failure_returns_exit_code(self):
        from pagespider import scripts

        error = subprocess.CalledProcessError(returncode=3, cmd="playwright", stderr="boom")
        with patch.object(scripts.subprocess, "run", side_effect=error):
            assert scripts.install_browsers() == 3


class TestSetupLogging:
    """Tests for logging configuration."""

    def test_handlers_and_level(self, tmp_path):
        log_file = tmp_path / "logs" / "spider.log"
        with patch("pagespider.logging_config.logging.basicConfig") as basic_config:
            setup_logging("debug", str(log_file))

        kwargs = basic_config.call_args.kwargs
        assert kwargs["level"] == logging.DEBUG
        assert kwargs["force"] is True
        assert len(kwargs["handlers"]) == 2
        assert log_file.parent.is_dir()
        for handler in kwargs["handlers"]:
            handler.close()

    def test_unknown_level_falls_back_to_info(self):
        with patch("pagespider.logging_config.logging.basicConfig") as basic_config:
            setup_logging("chatty")

        assert basic_config.call_args.kwargs["level"] == logging.INFO

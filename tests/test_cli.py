"""Tests for the racefetch command line."""

import json
from unittest.mock import patch

import pytest

from racefetch import cli
from racefetch.core.exceptions import AllStrategiesExhausted, ExternalCancellationError
from racefetch.services import sitemap as sitemap_module
from racefetch.services.race import RaceResult

URL = "https://example.com/sitemap.xml"


def _stub_fetch(monkeypatch, result=None, error=None, seen=None):
    async def fake_fetch(target, config=None, app_settings=None):
        if seen is not None:
            seen.append((target, config))
        if error is not None:
            raise error
        return result

    monkeypatch.setattr(sitemap_module, "fetch_sitemap_text", fake_fetch)


def _run(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


class TestParser:
    def test_sitemap_arguments(self):
        args = cli.build_parser().parse_args(
            ["-o", "json", "sitemap", URL, "--per-strategy-timeout", "5", "--overall-timeout", "9"]
        )
        assert args.command == "sitemap"
        assert args.url == URL
        assert args.output == "json"
        assert args.per_strategy_timeout == 5.0
        assert args.overall_timeout == 9.0

    def test_no_command_exits_1(self):
        assert _run([]) == 1

    def test_output_and_verbose_after_subcommand(self):
        args = cli.build_parser().parse_args(["sitemap", URL, "-o", "json", "-v"])
        assert args.output == "json"
        assert args.verbose is True

    def test_flags_before_subcommand_are_kept(self):
        args = cli.build_parser().parse_args(["-o", "json", "-v", "sitemap", URL])
        assert args.output == "json"
        assert args.verbose is True

    def test_defaults(self):
        args = cli.build_parser().parse_args(["sitemap", URL])
        assert args.output == "xml"
        assert args.verbose is False


class TestServeCommand:
    def test_runs_uvicorn(self):
        with patch("uvicorn.run") as run:
            assert _run(["serve", "--host", "0.0.0.0", "--port", "9000"]) == 0

        run.assert_called_once()
        assert run.call_args.args == ("racefetch.main:app",)
        assert run.call_args.kwargs["host"] == "0.0.0.0"
        assert run.call_args.kwargs["port"] == 9000
        assert run.call_args.kwargs["reload"] is False

    def test_serve_defaults(self):
        args = cli.build_parser().parse_args(["serve"])
        assert (args.host, args.port) == ("127.0.0.1", 8000)


class TestSitemapCommand:
    def test_prints_xml(self, monkeypatch, capsys, sitemap_xml):
        _stub_fetch(monkeypatch, result=RaceResult("Direct", sitemap_xml, 0.3))
        assert _run(["sitemap", URL]) == 0

        out, err = capsys.readouterr()
        assert sitemap_xml in out
        assert "Direct won in 0.30s" in err

    def test_json_output(self, monkeypatch, capsys, sitemap_xml):
        _stub_fetch(monkeypatch, result=RaceResult("Jina", sitemap_xml, 1.25))
        assert _run(["-o", "json", "sitemap", URL]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["winner"] == "Jina"
        assert data["url"] == URL
        assert data["text"] == sitemap_xml

    def test_timeouts_forwarded(self, monkeypatch, sitemap_xml):
        seen = []
        _stub_fetch(monkeypatch, result=RaceResult("Direct", sitemap_xml), seen=seen)
        _run(["sitemap", URL, "--per-strategy-timeout", "5", "--overall-timeout", "30"])

        target, config = seen[0]
        assert target == URL
        assert config.per_strategy_timeout == 5
        assert config.overall_timeout == 30
        assert config.external_cancellation is not None

    def test_race_failure_exits_1(self, monkeypatch, capsys):
        error = AllStrategiesExhausted(
            "All strategies failed: Direct: HTTP 403",
            per_strategy_reasons=[("Direct", "HTTP 403")],
        )
        _stub_fetch(monkeypatch, error=error)
        assert _run(["sitemap", URL]) == 1
        assert "All strategies failed: Direct: HTTP 403" in capsys.readouterr().err

    def test_race_failure_json(self, monkeypatch, capsys):
        error = AllStrategiesExhausted(
            "All strategies failed: Direct: HTTP 403",
            per_strategy_reasons=[("Direct", "HTTP 403")],
        )
        _stub_fetch(monkeypatch, error=error)
        assert _run(["-o", "json", "sitemap", URL]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["cause"] == "all-failed"
        assert data["reasons"] == [{"strategy": "Direct", "reason": "HTTP 403"}]

    def test_interrupted_exits_130(self, monkeypatch):
        _stub_fetch(monkeypatch, error=ExternalCancellationError("Cancelled: Direct: cancelled by caller"))
        assert _run(["sitemap", URL]) == 130

    def test_blank_url_exits_2(self, capsys):
        assert _run(["sitemap", "   "]) == 2
        assert "URL is required" in capsys.readouterr().err

    def test_json_output_flag_after_url(self, monkeypatch, capsys, sitemap_xml):
        _stub_fetch(monkeypatch, result=RaceResult("AllOrigins", sitemap_xml, 0.8))
        assert _run(["sitemap", URL, "-o", "json"]) == 0
        assert json.loads(capsys.readouterr().out)["winner"] == "AllOrigins"

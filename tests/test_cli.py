import os

import pytest

from clipscout import cli
from clipscout.pipeline import AcquisitionResult
from clipscout.storage.ledger import DownloadLedger
from conftest import make_clip


@pytest.fixture
def workdir(tmp_path, monkeypatch, restore_logging):
    for name in list(os.environ):
        if name.startswith(("CLIPSCOUT_", "TWITCH_", "YOUTUBE_", "YT_")) or name == "OUTPUT_DIR":
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("")
    return tmp_path


@pytest.fixture
def pipeline_calls(monkeypatch):
    calls = []

    def fake_run_pipeline(request, config):
        calls.append((request, config))
        return AcquisitionResult(requested=request.limit, status="exhausted")

    monkeypatch.setattr(cli, "run_pipeline", fake_run_pipeline)
    return calls


def test_config_prints_sample_env(capsys):
    assert cli.main(["config"]) == 0
    out = capsys.readouterr().out
    assert "TWITCH_CLIENT_ID=" in out
    assert "YOUTUBE_API_KEY=" in out


def test_scrape_without_credentials_exits_1(workdir, pipeline_calls):
    code = cli.main(["scrape", "all", "--platforms", "twitch", "kick", "-o", str(workdir / "out")])

    assert code == 1
    assert pipeline_calls == []


def test_scrape_runs_pipeline_with_flags(workdir, pipeline_calls, capsys):
    code = cli.main(
        [
            "scrape",
            "xqc",
            "-p",
            "kick",
            "-l",
            "3",
            "-o",
            str(workdir / "out"),
            "--min-views",
            "100",
            "--social-formats",
            "vertical",
            "--social-duration",
            "30",
            "--no-background-blur",
        ]
    )

    assert code == 0
    (request, config), = pipeline_calls
    assert request.subject == "xqc"
    assert list(request.platforms) == ["kick"]
    assert request.limit == 3
    assert request.min_views == 100
    assert config.output_dir == workdir / "out"
    settings = config.social_settings()
    assert settings.vertical and not settings.square
    assert settings.max_duration == 30
    assert settings.background_blur is False
    assert "No clips were downloaded" in capsys.readouterr().out


def test_scrape_can_disable_social_media(workdir, pipeline_calls):
    assert cli.main(["scrape", "all", "-p", "kick", "--no-social-media"]) == 0
    (_, config), = pipeline_calls
    assert config.social_settings().enabled is False


def test_invalid_quality_exits_1(workdir, pipeline_calls):
    assert cli.main(["scrape", "all", "-p", "kick", "-q", "ultra"]) == 1
    assert pipeline_calls == []


def test_stats_reports_per_platform(workdir, capsys):
    out_dir = workdir / "out"
    ledger = DownloadLedger.for_output_dir(out_dir)
    ledger.mark_downloaded(make_clip("1"))
    ledger.mark_downloaded(make_clip("2", platform="kick"))
    ledger.persist()

    assert cli.main(["stats", "-o", str(out_dir)]) == 0

    out = capsys.readouterr().out
    assert "Total clips downloaded: 2" in out
    assert "kick: 1 clips" in out
    assert "twitch: 1 clips" in out


def test_clear_history_requires_confirm(workdir):
    out_dir = workdir / "out"
    ledger = DownloadLedger.for_output_dir(out_dir)
    ledger.mark_downloaded(make_clip("1"))
    ledger.persist()

    assert cli.main(["clear-history", "-o", str(out_dir)]) == 0
    still = DownloadLedger.for_output_dir(out_dir)
    still.load()
    assert len(still) == 1

    assert cli.main(["clear-history", "-o", str(out_dir), "--confirm"]) == 0
    cleared = DownloadLedger.for_output_dir(out_dir)
    cleared.load()
    assert len(cleared) == 0


def test_unknown_platform_rejected_by_parser(workdir):
    with pytest.raises(SystemExit):
        cli.main(["scrape", "all", "-p", "myspace"])

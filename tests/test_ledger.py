import json

from clipscout.storage.ledger import LEDGER_FILENAME, DownloadLedger
from conftest import make_clip


def test_persist_and_reload_round_trip(tmp_path):
    ledger = DownloadLedger.for_output_dir(tmp_path)
    ledger.load()
    assert ledger.mark_downloaded(make_clip("1"))
    assert ledger.mark_downloaded(make_clip("2", platform="kick"))
    assert ledger.persist()

    reloaded = DownloadLedger(tmp_path / LEDGER_FILENAME)
    reloaded.load()
    assert len(reloaded) == 2
    assert reloaded.is_known(make_clip("1"))
    assert make_clip("2", platform="kick") in reloaded


def test_file_uses_camel_case_snapshot(tmp_path):
    ledger = DownloadLedger.for_output_dir(tmp_path)
    ledger.mark_downloaded(make_clip("9", creator="xqc"))
    ledger.persist()

    data = json.loads((tmp_path / LEDGER_FILENAME).read_text())
    assert data["downloadedIds"] == ["twitch:9:xqc"]
    assert data["totalDownloaded"] == 1
    assert data["lastUpdated"]


def test_mark_downloaded_is_idempotent(tmp_path):
    ledger = DownloadLedger.for_output_dir(tmp_path)
    assert ledger.mark_downloaded(make_clip("1"))
    assert not ledger.mark_downloaded(make_clip("1"))
    assert len(ledger) == 1


def test_is_known_requires_platform_id_and_creator(tmp_path):
    ledger = DownloadLedger.for_output_dir(tmp_path)
    ledger.mark_downloaded(make_clip("1", platform="twitch", creator="a"))

    assert ledger.is_known(make_clip("1", platform="twitch", creator="a"))
    assert not ledger.is_known(make_clip("1", platform="kick", creator="a"))
    assert not ledger.is_known(make_clip("1", platform="twitch", creator="b"))
    assert not ledger.is_known(make_clip("2", platform="twitch", creator="a"))


def test_missing_file_loads_empty(tmp_path):
    ledger = DownloadLedger.for_output_dir(tmp_path / "nowhere")
    ledger.load()
    assert ledger.loaded
    assert len(ledger) == 0


def test_corrupt_file_loads_empty(tmp_path):
    (tmp_path / LEDGER_FILENAME).write_text("{not json")
    ledger = DownloadLedger.for_output_dir(tmp_path)
    ledger.load()
    assert ledger.loaded
    assert len(ledger) == 0


def test_persist_failure_keeps_memory_state(tmp_path):
    target = tmp_path / "ledger-dir"
    target.mkdir()
    ledger = DownloadLedger(target)
    ledger.mark_downloaded(make_clip("1"))

    assert ledger.persist() is False
    assert ledger.is_known(make_clip("1"))
    assert not (tmp_path / "ledger-dir.tmp").exists()


def test_stats_counts_per_platform(tmp_path):
    ledger = DownloadLedger.for_output_dir(tmp_path)
    for clip in (make_clip("1"), make_clip("2"), make_clip("3", platform="kick")):
        ledger.mark_downloaded(clip)

    stats = ledger.stats()
    assert stats.total == 3
    assert stats.per_platform == {"kick": 1, "twitch": 2}


def test_clear_empties_and_persists(tmp_path):
    ledger = DownloadLedger.for_output_dir(tmp_path)
    ledger.mark_downloaded(make_clip("1"))
    ledger.persist()

    assert ledger.clear()
    reloaded = DownloadLedger.for_output_dir(tmp_path)
    reloaded.load()
    assert len(reloaded) == 0

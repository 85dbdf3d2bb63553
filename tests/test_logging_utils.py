import json
import logging
from types import SimpleNamespace

from clipscout.logging_utils import TRACE_ID_ENV, JsonFormatter, RunContextFilter, configure_logging


def _record(**extra):
    return logging.makeLogRecord({"name": "clipscout.test", "msg": "saved %s", "args": ("x",), **extra})


def test_filter_stamps_trace_id_and_environment():
    record = _record(event="ledger.saved")

    assert RunContextFilter("abc123", "production").filter(record)
    assert record.trace_id == "abc123"
    assert record.environment == "production"
    assert record.event == "ledger.saved"


def test_json_formatter_lifts_extra_fields():
    record = _record(event="config.loaded", paths={"output": "/clips"})
    RunContextFilter("abc123", "staging").filter(record)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "saved x"
    assert payload["trace_id"] == "abc123"
    assert payload["environment"] == "staging"
    assert payload["paths"] == {"output": "/clips"}
    assert "args" not in payload


def test_trace_id_taken_from_environment(monkeypatch, restore_logging):
    monkeypatch.setenv(TRACE_ID_ENV, "from-env")
    config = SimpleNamespace(environment="production", log_path=None)

    assert configure_logging(config) == "from-env"


def test_log_file_lines_carry_run_trace_id(tmp_path, monkeypatch, restore_logging):
    monkeypatch.delenv(TRACE_ID_ENV, raising=False)
    log_path = tmp_path / "logs" / "clipscout.log"
    config = SimpleNamespace(environment="production", log_path=log_path)

    trace_id = configure_logging(config)
    logging.getLogger("clipscout.test").info("hello", extra={"event": "test.hello"})
    for handler in logging.getLogger().handlers:
        handler.flush()

    line = json.loads(log_path.read_text(encoding="utf-8").splitlines()[-1])
    assert len(trace_id) == 32
    assert line["trace_id"] == trace_id
    assert line["event"] == "test.hello"
    assert line["message"] == "hello"

"""Entry point for running clipscout from a source checkout."""

from __future__ import annotations

import json
import logging
import os
import socket
import sys
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence

from clipscout.cli import main as cli_main
from clipscout.logging_utils import TRACE_ID_ENV

LOGGER = logging.getLogger("clipscout.main")


@dataclass(frozen=True, slots=True)
class RunContext:
    """Captures immutable metadata for a single clipscout invocation."""

    trace_id: str
    instance_id: str
    wall_clock_ns: int
    monotonic_ns: int

    @property
    def started_at_iso(self) -> str:
        """Return the ISO8601 timestamp (UTC) for when the run began."""
        seconds = self.wall_clock_ns / 1_000_000_000
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _build_run_context() -> RunContext:
    trace_id = os.getenv(TRACE_ID_ENV) or uuid.uuid4().hex
    instance_id = os.getenv("CLIPSCOUT_INSTANCE_ID") or socket.gethostname()
    return RunContext(
        trace_id=trace_id,
        instance_id=instance_id,
        wall_clock_ns=time.time_ns(),
        monotonic_ns=time.perf_counter_ns(),
    )


def _log_event(level: int, event: str, context: RunContext, **fields: Any) -> None:
    """Emit structured JSON logs with consistent tracing metadata."""
    payload: dict[str, Any] = {
        "event": event,
        "trace_id": context.trace_id,
        "instance_id": context.instance_id,
        "started_at": context.started_at_iso,
        **fields,
    }
    LOGGER.log(level, json.dumps(payload, default=str, separators=(",", ":")))


def _emit_metric(name: str, value: float, unit: str, context: RunContext, **labels: Any) -> None:
    metric_fields = {"metric_name": name, "value": value, "unit": unit, **labels}
    _log_event(logging.INFO, "metric", context, **metric_fields)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and report its duration and exit code."""
    context = _build_run_context()
    os.environ.setdefault(TRACE_ID_ENV, context.trace_id)
    _log_event(logging.DEBUG, "clipscout.run_started", context, argv=list(argv) if argv is not None else sys.argv[1:])
    try:
        code = cli_main(argv)
    except SystemExit as exc:
        # argparse exits on --help, --version and usage errors.
        code = exc.code if isinstance(exc.code, int) else 1
    runtime_ms = (time.perf_counter_ns() - context.monotonic_ns) / 1_000_000
    _emit_metric("run_duration_ms", runtime_ms, "milliseconds", context, exit_code=code)
    level = logging.INFO if code == 0 else logging.WARNING
    _log_event(level, "clipscout.run_completed", context, duration_ms=round(runtime_ms, 2), exit_code=code)
    return code


if __name__ == "__main__":
    sys.exit(main())

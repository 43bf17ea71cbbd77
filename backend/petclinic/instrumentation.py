"""Structured instrumentation events for request handlers."""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Iterator, Protocol

from .config import settings


_WRITE_LOCK = Lock()
_LOGGER = logging.getLogger("petclinic.instrumentation")


class Instrumentation(Protocol):
    def record(self, event: str, attributes: dict) -> None:
        ...


class LoggingInstrumentation:
    """Log every event as JSON and optionally append it to a jsonl file.

    Events ending in `.failed` are logged at ERROR, everything else at
    INFO. Trace spans are recorded as `span.start` / `span.end` and span
    labels as `span.label`.
    """

    def __init__(self, events_dir: str = ""):
        self.events_dir = events_dir

    def _events_path(self) -> Path:
        root = Path(self.events_dir).expanduser().resolve()
        root.mkdir(parents=True, exist_ok=True)
        return root / "events.jsonl"

    def record(self, event: str, attributes: dict) -> None:
        payload = {"event": event, **attributes}
        payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        line = json.dumps(payload, ensure_ascii=True, default=str)
        if self.events_dir:
            with _WRITE_LOCK:
                with self._events_path().open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
        level = logging.ERROR if event.endswith(".failed") else logging.INFO
        _LOGGER.log(level, "event %s", line)


@contextmanager
def capture_span(instrumentation: Instrumentation, name: str, **attributes) -> Iterator[None]:
    """Record `span.start` before the block and `span.end` after it.

    `span.end` carries `outcome` (`ok` or `error`) and `duration_ms`;
    exceptions from the block propagate unchanged.
    """
    instrumentation.record("span.start", {"span": name, **attributes})
    started = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except Exception:
        outcome = "error"
        raise
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        instrumentation.record("span.end", {"span": name, "outcome": outcome, "duration_ms": elapsed_ms, **attributes})


_default = LoggingInstrumentation(settings.OBSERVABILITY_DIR)


def get_instrumentation() -> Instrumentation:
    """FastAPI dependency returning the process-wide instrumentation."""
    return _default

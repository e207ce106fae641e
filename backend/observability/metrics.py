"""
Stage latency metrics.

Responsibilities:
- Measure collaborator call durations using monotonic time
- Emit one METRIC_TIMER event per measurement via observability.logger
- Never aggregate: dashboards work from the JSONL stream

Design notes:
- Durations use monotonic time for correctness
- Event timestamps (ts_ms) use wall-clock time for correlation with
  orchestrator decision logs
- Prefer the `timed()` context manager to avoid leaked timers
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


# -----------------------------------------------------------------------------
# Internal timer storage
# -----------------------------------------------------------------------------
# timer_id -> (metric_name, start_time_ns)
_active_timers: dict[str, tuple[str, int]] = {}


def start_timer(name: str) -> str:
    """
    Start a monotonic timer and return its opaque id.

    Callers MUST call stop_timer() in a finally block
    unless using the `timed()` context manager.
    """
    timer_id = f"metric_{uuid.uuid4().hex[:12]}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    session_id: str | None = None,
    outcome: str = "ok",
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Stop a previously started timer and emit a metric event.

    Returns duration_ms if the timer existed, else None.
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

    log_event({
        "ts_ms": int(time.time() * 1000),
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "session_id": session_id,
        "outcome": outcome,
        "details": details or {},
    })

    return duration_ms


def active_timer_count() -> int:
    return len(_active_timers)


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Context manager for measuring a stage duration.

    Guarantees:
    - Timer is ALWAYS stopped (no leaks)
    - Metric is emitted exactly once
    - Exceptions (including cancellation) propagate unchanged and are
      recorded as outcome="error" / "cancelled"

    Usage:
        with timed("transcription_latency", session_id=session_id):
            text = await service.transcribe(artifact, token)
    """
    timer_id = start_timer(name)
    outcome = "ok"
    try:
        yield
    except asyncio.CancelledError:
        outcome = "cancelled"
        raise
    except Exception:
        outcome = "error"
        raise
    finally:
        stop_timer(
            timer_id,
            session_id=session_id,
            outcome=outcome,
            details=details,
        )

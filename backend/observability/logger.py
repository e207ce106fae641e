"""
JSONL event logger.

Every orchestrator decision, collaborator outcome and metric is one
JSON object on one line:
- Output to stdout by default
- No buffering, no batching
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
from typing import Any, Callable, Mapping


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print


def set_sink(sink: Callable[[str], None] | None) -> None:
    """Redirect log lines (e.g. to a file); None restores stdout."""
    global _print  # pylint: disable=global-statement
    _print = sink if sink is not None else _stdout_print


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event.

    The caller is responsible for supplying a fully-formed event dict
    (ts_ms, session_id, event_type, ...).

    This function:
    - Serializes to JSON (enum values are written as their value)
    - Writes exactly one line
    - Never raises
    """
    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"), default=_default)
    except (TypeError, ValueError) as e:
        # Logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)


def _default(value: Any) -> Any:
    enum_value = getattr(value, "value", None)
    if isinstance(enum_value, (str, int)):
        return enum_value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

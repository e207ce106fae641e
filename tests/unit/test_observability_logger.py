# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger
from orchestrator.enums.failure import FailureKind


def test_log_event_emits_valid_jsonl(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload is serialized as-is
    - output sink is patchable
    """
    captured: list[str] = []

    def fake_print(line: str) -> None:
        captured.append(line)

    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", fake_print)

    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    # Exactly one line emitted
    assert len(captured) == 1
    assert "\n" not in captured[0]

    # Payload must be preserved exactly
    assert json.loads(captured[0]) == payload


def test_enum_values_are_serialized(captured_logs: list[str]) -> None:
    logger.log_event({"event_type": "TEST", "failure": FailureKind.CAPTURE_TIMEOUT})

    assert json.loads(captured_logs[-1])["failure"] == "capture_timeout"


def test_unserializable_payload_never_raises(captured_logs: list[str]) -> None:
    logger.log_event({"ts_ms": 5, "event_type": "TEST", "blob": object()})

    decoded = json.loads(captured_logs[-1])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 5
    assert "blob" in decoded["original_event_repr"]


def test_set_sink_redirects_and_restores(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", logger._stdout_print)  # pylint: disable=protected-access
    lines: list[str] = []

    logger.set_sink(lines.append)
    logger.log_event({"event_type": "A"})
    logger.set_sink(None)

    assert [json.loads(line) for line in lines] == [{"event_type": "A"}]
    assert logger._print is logger._stdout_print  # pylint: disable=protected-access

# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from config import AppConfig
from orchestrator.phases import Idle
from orchestrator.state_dataclass import StageTimeouts
from session.factory import build_orchestrator


def test_missing_api_key_raises() -> None:
    with pytest.raises(RuntimeError):
        build_orchestrator(AppConfig(openai_api_key=None))


def test_config_timeouts_reach_the_session(captured_logs: list[str]) -> None:
    config = AppConfig(
        openai_api_key="sk-test",
        capture_timeout_ms=1_000,
        transcription_timeout_ms=2_000,
        enhancement_timeout_ms=3_000,
    )

    orchestrator = build_orchestrator(config)

    assert orchestrator.phase == Idle()
    assert orchestrator.state.timeouts == StageTimeouts(
        capture_ms=1_000, transcription_ms=2_000, enhancement_ms=3_000
    )
    assert orchestrator.session_id.startswith("sess_")
    created = [json.loads(line) for line in captured_logs]
    assert created[-1]["event_type"] == "session_created"
    assert created[-1]["session_id"] == orchestrator.session_id


def test_environment_is_read_without_explicit_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("ENHANCEMENT_TIMEOUT_MS", "4500")

    orchestrator = build_orchestrator()

    assert orchestrator.state.timeouts.enhancement_ms == 4_500

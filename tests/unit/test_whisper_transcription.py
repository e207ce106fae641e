# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from types import SimpleNamespace
from typing import Any

import numpy as np
import pytest

from adapters.errors import TranscriptionError
from adapters.transcription.whisper_local import WhisperTranscriptionService, is_non_speech
from audio.artifact import AudioArtifact
from orchestrator.cancellation import CancellationToken
from orchestrator.enums.failure import FailureKind
from orchestrator.enums.service import Service


class FakeWhisperModel:
    def __init__(self, texts: list[str], error: Exception | None = None) -> None:
        self.texts = texts
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def transcribe(self, audio: np.ndarray, **kwargs: Any) -> tuple[Any, Any]:
        self.calls.append({"audio": audio, **kwargs})
        if self.error is not None:
            raise self.error
        segments = (SimpleNamespace(text=t) for t in self.texts)
        return segments, SimpleNamespace(language="en")


def _artifact(num_bytes: int = 32_000) -> AudioArtifact:
    return AudioArtifact(pcm_bytes=b"\x00\x01" * (num_bytes // 2))


def _token(run_id: int = 1) -> CancellationToken:
    return CancellationToken(service=Service.TRANSCRIPTION, run_id=run_id)


def _service(model: Any) -> WhisperTranscriptionService:
    return WhisperTranscriptionService(language="en", model_factory=lambda: model)


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


def test_segments_are_joined() -> None:
    model = FakeWhisperModel([" Hello there. ", "", "General Kenobi."])

    text = _run(_service(model).transcribe(_artifact(), _token()))

    assert text == "Hello there. General Kenobi."
    assert model.calls[0]["language"] == "en"
    assert model.calls[0]["audio"].dtype == np.float32


def test_model_loaded_once() -> None:
    loads: list[int] = []
    model = FakeWhisperModel(["hi"])

    def factory() -> FakeWhisperModel:
        loads.append(1)
        return model

    service = WhisperTranscriptionService(model_factory=factory)

    async def scenario() -> None:
        await service.transcribe(_artifact(), _token(1))
        await service.transcribe(_artifact(), _token(2))

    _run(scenario())
    assert len(loads) == 1


def test_short_artifact_is_rejected_before_model_use() -> None:
    model = FakeWhisperModel(["never"])

    with pytest.raises(TranscriptionError) as info:
        _run(_service(model).transcribe(_artifact(100), _token()))

    assert info.value.kind is FailureKind.TRANSCRIPTION_AUDIO_TOO_SHORT
    assert not model.calls


@pytest.mark.parametrize("texts", [[], ["   "], ["[Music]"], ["[BLANK_AUDIO]"]])
def test_non_speech_output(texts: list[str]) -> None:
    with pytest.raises(TranscriptionError) as info:
        _run(_service(FakeWhisperModel(texts)).transcribe(_artifact(), _token()))

    assert info.value.kind is FailureKind.TRANSCRIPTION_NO_SPEECH


def test_model_load_failure_is_unavailable() -> None:
    def factory() -> Any:
        raise OSError("model files missing")

    service = WhisperTranscriptionService(model_factory=factory)

    with pytest.raises(TranscriptionError) as info:
        _run(service.transcribe(_artifact(), _token()))

    assert info.value.kind is FailureKind.TRANSCRIPTION_UNAVAILABLE


def test_model_error_is_transcription_failed() -> None:
    model = FakeWhisperModel([], error=RuntimeError("decoder crashed"))

    with pytest.raises(TranscriptionError) as info:
        _run(_service(model).transcribe(_artifact(), _token()))

    assert info.value.kind is FailureKind.TRANSCRIPTION_FAILED


def test_cancelled_token_produces_no_text() -> None:
    model = FakeWhisperModel(["hello"])
    token = _token()
    token.cancel()

    async def scenario() -> None:
        with pytest.raises(asyncio.CancelledError):
            await _service(model).transcribe(_artifact(), token)

    _run(scenario())

    assert not model.calls


def test_cancel_for_unknown_run_is_silent() -> None:
    _run(_service(FakeWhisperModel([])).cancel(_token(99)))


def test_is_non_speech() -> None:
    assert is_non_speech("")
    assert is_non_speech(" [Noise] ")
    assert not is_non_speech("Play some music please")

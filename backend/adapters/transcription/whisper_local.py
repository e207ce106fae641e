# pyright: reportUnknownVariableType=false
# pyright: reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false
"""
Local Whisper transcription (faster-whisper).

Mechanism only:
- Accepts one PCM16 (16kHz, mono) artifact
- Converts to Whisper input format
- Runs transcription off the event loop
- Returns text

Must NOT:
- Know about phases or run ids beyond the token it is handed
- Emit orchestrator events
- Manage timers

Determinism note:
- Whisper is not bitwise-deterministic across executions.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Callable

import numpy as np

from adapters.errors import TranscriptionError
from adapters.transcription.base import TranscriptionService
from audio.artifact import AudioArtifact
from audio.pcm import pcm16le_to_float32
from constants import MIN_ARTIFACT_BYTES, NON_SPEECH_MARKERS
from observability.logger import log_event
from orchestrator.cancellation import CancellationToken
from orchestrator.enums.failure import FailureKind


ModelFactory = Callable[[], Any]


class _Cancelled(Exception):
    """Raised inside the worker thread when the token is cancelled."""


def is_non_speech(text: str) -> bool:
    """True for empty output or output flagged as music / noise."""
    lowered = text.strip().lower()
    if not lowered:
        return True
    return any(marker in lowered for marker in NON_SPEECH_MARKERS)


class WhisperTranscriptionService(TranscriptionService):
    """
    faster-whisper backed TranscriptionService.

    The model is loaded lazily on first use (in a worker thread) and
    reused afterwards. A load failure is reported as
    transcription_unavailable and retried on the next call.

    Cancellation is checked between decoded segments; a cancelled call
    ends with asyncio.CancelledError and produces no text.
    """

    def __init__(
        self,
        *,
        model: str = "base",
        device: str = "cpu",
        compute_type: str = "int8",
        language: str | None = None,
        model_factory: ModelFactory | None = None,
    ) -> None:
        self._model_name = model
        self._device = device
        self._compute_type = compute_type
        self._language = language
        self._model_factory = model_factory or self._default_model_factory

        self._model: Any = None
        self._model_lock = threading.Lock()
        self._cancelled_runs: dict[int, threading.Event] = {}

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def transcribe(self, artifact: AudioArtifact, token: CancellationToken) -> str:
        if artifact.size_bytes < MIN_ARTIFACT_BYTES:
            raise TranscriptionError(
                f"Recording too short or empty ({artifact.size_bytes} bytes)",
                kind=FailureKind.TRANSCRIPTION_AUDIO_TOO_SHORT,
            )

        stop = self._cancelled_runs.setdefault(token.run_id, threading.Event())
        try:
            text = await asyncio.to_thread(self._transcribe_blocking, artifact, token, stop)
        except _Cancelled as exc:
            raise asyncio.CancelledError() from exc
        finally:
            self._cancelled_runs.pop(token.run_id, None)

        if is_non_speech(text):
            raise TranscriptionError(
                "No clear speech detected",
                kind=FailureKind.TRANSCRIPTION_NO_SPEECH,
            )
        return text

    async def cancel(self, token: CancellationToken) -> None:
        stop = self._cancelled_runs.get(token.run_id)
        if stop is not None:
            stop.set()

    # -------------------------------------------------------------------------
    # Worker thread
    # -------------------------------------------------------------------------

    def _ensure_model(self) -> Any:
        with self._model_lock:
            if self._model is None:
                try:
                    self._model = self._model_factory()
                except Exception as exc:
                    raise TranscriptionError(
                        f"Whisper model {self._model_name!r} could not be loaded: {exc!r}",
                        kind=FailureKind.TRANSCRIPTION_UNAVAILABLE,
                    ) from exc
                log_event({
                    "event_type": "whisper_model_loaded",
                    "model": self._model_name,
                    "device": self._device,
                    "compute_type": self._compute_type,
                })
            return self._model

    def _transcribe_blocking(
        self,
        artifact: AudioArtifact,
        token: CancellationToken,
        stop: threading.Event,
    ) -> str:
        model = self._ensure_model()
        audio: np.ndarray = pcm16le_to_float32(artifact.pcm_bytes)

        def _check() -> None:
            if stop.is_set() or token.cancelled:
                raise _Cancelled()

        _check()
        try:
            segments_iter, _info = model.transcribe(
                audio,
                language=self._language,
                beam_size=1,
                temperature=0.0,
                vad_filter=False,
            )
            text_parts: list[str] = []
            for seg in segments_iter:
                _check()
                seg_text = str(getattr(seg, "text", "")).strip()
                if seg_text:
                    text_parts.append(seg_text)
        except _Cancelled:
            raise
        except Exception as exc:
            raise TranscriptionError(
                f"Whisper transcription failed: {exc!r}",
                kind=FailureKind.TRANSCRIPTION_FAILED,
            ) from exc

        return " ".join(text_parts).strip()

    def _default_model_factory(self) -> Any:
        from faster_whisper import WhisperModel  # pylint: disable=import-outside-toplevel

        return WhisperModel(
            self._model_name,
            device=self._device,
            compute_type=self._compute_type,
        )

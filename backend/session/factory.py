"""
Production wiring.

build_orchestrator() constructs the concrete collaborators from an
AppConfig and hands them to a new SessionOrchestrator. It is the only
module that knows which vendor libraries back each collaborator.
"""

from __future__ import annotations

import time
from pathlib import Path

from dotenv import load_dotenv
from openai import AsyncOpenAI

from adapters.capture.sounddevice_capture import SoundDeviceCapture
from adapters.clipboard import PyperclipClipboard
from adapters.enhancement.openai_enhancer import OpenAIEnhancementService
from adapters.notifications import LoggingNotificationSink
from adapters.transcription.whisper_local import WhisperTranscriptionService
from config import AppConfig
from observability.logger import log_event
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import StageTimeouts
from session.session_orchestrator import SessionOrchestrator, new_session_id


def build_orchestrator(config: AppConfig | None = None) -> SessionOrchestrator:
    """
    Create one dictation session backed by the microphone, local
    Whisper, and the OpenAI chat API.

    Without an explicit config, .env is loaded and the configuration
    is read from the environment.

    Raises:
        RuntimeError if OPENAI_API_KEY is not configured.
    """
    if config is None:
        load_dotenv()
        config = AppConfig.load_from_env()

    if not config.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable not set")

    session_id = new_session_id()
    recordings_dir = Path(config.recordings_dir) if config.recordings_dir else None

    context = RuntimeExecutionContext(
        session_id=session_id,
        capture_device=SoundDeviceCapture(
            device_name=config.capture_device,
            sample_rate_hz=config.capture_sample_rate_hz,
            recordings_dir=recordings_dir,
        ),
        transcription_service=WhisperTranscriptionService(
            model=config.whisper_model,
            device=config.whisper_device,
            compute_type=config.whisper_compute_type,
            language=config.whisper_language,
        ),
        enhancement_service=OpenAIEnhancementService(
            client=AsyncOpenAI(api_key=config.openai_api_key),
            model=config.enhancement_model,
        ),
        notification_sink=LoggingNotificationSink(session_id=session_id),
        clipboard=PyperclipClipboard(),
    )

    log_event({
        "ts_ms": int(time.time() * 1000),
        "event_type": "session_created",
        "session_id": session_id,
        "env": config.env,
        "whisper_model": config.whisper_model,
        "enhancement_model": config.enhancement_model,
    })

    return SessionOrchestrator(
        context=context,
        timeouts=StageTimeouts(
            capture_ms=config.capture_timeout_ms,
            transcription_ms=config.transcription_timeout_ms,
            enhancement_ms=config.enhancement_timeout_ms,
        ),
    )


"""
User-facing failure notifications.

describe_failure() maps every FailureKind to a title and message.
The UI renders these; it never renders raw error objects.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from observability.logger import log_event
from orchestrator.enums.failure import FailureKind


@dataclass(frozen=True)
class FailureNotice:
    title: str
    message: str


_NOTICES: dict[FailureKind, FailureNotice] = {
    # Capture
    FailureKind.CAPTURE_PERMISSION_DENIED: FailureNotice(
        "Microphone Permission Required",
        "Microphone access is required to record audio. "
        "Please grant permission in your system privacy settings.",
    ),
    FailureKind.CAPTURE_SETUP_FAILED: FailureNotice(
        "Recording Error",
        "Failed to set up audio recording. Please check your microphone.",
    ),
    FailureKind.CAPTURE_START_FAILED: FailureNotice(
        "Recording Error",
        "Failed to start recording. Please check your microphone connection and try again.",
    ),
    FailureKind.CAPTURE_NO_AUDIO: FailureNotice(
        "Recording Error",
        "No audio was recorded. Please try again.",
    ),
    FailureKind.CAPTURE_TIMEOUT: FailureNotice(
        "Recording Error",
        "The microphone did not respond. Please try again.",
    ),
    # Transcription
    FailureKind.TRANSCRIPTION_UNAVAILABLE: FailureNotice(
        "Transcription Error",
        "The transcription model is not available yet. Please try again in a moment.",
    ),
    FailureKind.TRANSCRIPTION_FAILED: FailureNotice(
        "Transcription Error",
        "Failed to transcribe audio. Please try recording again.",
    ),
    FailureKind.TRANSCRIPTION_NO_SPEECH: FailureNotice(
        "Transcription Error",
        "No clear speech detected. Please speak more clearly and try again.",
    ),
    FailureKind.TRANSCRIPTION_AUDIO_TOO_SHORT: FailureNotice(
        "Transcription Error",
        "Recording too short or empty. Please record for at least 1-2 seconds.",
    ),
    FailureKind.TRANSCRIPTION_TIMEOUT: FailureNotice(
        "Transcription Error",
        "Transcription took too long. Please try recording again.",
    ),
    # Enhancement
    FailureKind.ENHANCEMENT_FAILED: FailureNotice(
        "Processing Error",
        "Failed to process text with AI. Please try again.",
    ),
    FailureKind.ENHANCEMENT_TIMEOUT: FailureNotice(
        "Processing Error",
        "AI processing took too long. Your transcription was kept. Please try again.",
    ),
}


def describe_failure(failure: FailureKind) -> FailureNotice:
    return _NOTICES[failure]


class LoggingNotificationSink:
    """NotificationSink that renders each failure as one JSONL event."""

    def __init__(self, *, session_id: str | None = None) -> None:
        self._session_id = session_id

    def notify(self, failure: FailureKind) -> None:
        notice = describe_failure(failure)
        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "user_notification",
            "session_id": self._session_id,
            "failure": failure.value,
            "category": failure.category.value,
            "title": notice.title,
            "message": notice.message,
        })

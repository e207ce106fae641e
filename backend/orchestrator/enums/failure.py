"""
Failure taxonomy.

Rules:
- FailureKind is the tagged error variant carried by failure events.
- FailureCategory groups kinds by the stage that produced them.
- Recovery decisions are made in orchestrator.recovery, not here.
"""

from __future__ import annotations

from enum import Enum

from orchestrator.enums.service import Service


class FailureCategory(str, Enum):
    """Stage that produced a failure."""

    CAPTURE_ERROR = "CaptureError"
    TRANSCRIPTION_ERROR = "TranscriptionError"
    ENHANCEMENT_ERROR = "EnhancementError"


class FailureKind(str, Enum):
    """
    Concrete failure reasons reported to the orchestrator.

    Timeout kinds are produced by the orchestrator's own stage timers;
    every other kind is raised by a collaborator.
    """

    # Capture
    CAPTURE_PERMISSION_DENIED = "capture_permission_denied"
    CAPTURE_SETUP_FAILED = "capture_setup_failed"
    CAPTURE_START_FAILED = "capture_start_failed"
    CAPTURE_NO_AUDIO = "capture_no_audio"
    CAPTURE_TIMEOUT = "capture_timeout"

    # Transcription
    TRANSCRIPTION_UNAVAILABLE = "transcription_unavailable"
    TRANSCRIPTION_FAILED = "transcription_failed"
    TRANSCRIPTION_NO_SPEECH = "transcription_no_speech"
    TRANSCRIPTION_AUDIO_TOO_SHORT = "transcription_audio_too_short"
    TRANSCRIPTION_TIMEOUT = "transcription_timeout"

    # Enhancement
    ENHANCEMENT_FAILED = "enhancement_failed"
    ENHANCEMENT_TIMEOUT = "enhancement_timeout"

    @property
    def category(self) -> FailureCategory:
        """Stage this kind belongs to."""
        return _CATEGORY_BY_KIND[self]


_CATEGORY_BY_KIND: dict[FailureKind, FailureCategory] = {
    FailureKind.CAPTURE_PERMISSION_DENIED: FailureCategory.CAPTURE_ERROR,
    FailureKind.CAPTURE_SETUP_FAILED: FailureCategory.CAPTURE_ERROR,
    FailureKind.CAPTURE_START_FAILED: FailureCategory.CAPTURE_ERROR,
    FailureKind.CAPTURE_NO_AUDIO: FailureCategory.CAPTURE_ERROR,
    FailureKind.CAPTURE_TIMEOUT: FailureCategory.CAPTURE_ERROR,
    FailureKind.TRANSCRIPTION_UNAVAILABLE: FailureCategory.TRANSCRIPTION_ERROR,
    FailureKind.TRANSCRIPTION_FAILED: FailureCategory.TRANSCRIPTION_ERROR,
    FailureKind.TRANSCRIPTION_NO_SPEECH: FailureCategory.TRANSCRIPTION_ERROR,
    FailureKind.TRANSCRIPTION_AUDIO_TOO_SHORT: FailureCategory.TRANSCRIPTION_ERROR,
    FailureKind.TRANSCRIPTION_TIMEOUT: FailureCategory.TRANSCRIPTION_ERROR,
    FailureKind.ENHANCEMENT_FAILED: FailureCategory.ENHANCEMENT_ERROR,
    FailureKind.ENHANCEMENT_TIMEOUT: FailureCategory.ENHANCEMENT_ERROR,
}


def default_failure_for(service: Service) -> FailureKind:
    """Kind reported when a collaborator fails without classifying the error."""
    if service is Service.CAPTURE:
        return FailureKind.CAPTURE_START_FAILED
    if service is Service.TRANSCRIPTION:
        return FailureKind.TRANSCRIPTION_FAILED
    if service is Service.ENHANCEMENT:
        return FailureKind.ENHANCEMENT_FAILED
    raise ValueError(service)


def timeout_failure_for(service: Service) -> FailureKind:
    """Kind reported when a stage timer expires."""
    if service is Service.CAPTURE:
        return FailureKind.CAPTURE_TIMEOUT
    if service is Service.TRANSCRIPTION:
        return FailureKind.TRANSCRIPTION_TIMEOUT
    if service is Service.ENHANCEMENT:
        return FailureKind.ENHANCEMENT_TIMEOUT
    raise ValueError(service)

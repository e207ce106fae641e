"""
Unified event definitions for the orchestrator reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Collaborator and timer events carry run_id for stale gating.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from audio.artifact import AudioArtifact, CaptureHandle
from orchestrator.enums.failure import FailureKind
from orchestrator.enums.service import Service


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (phase, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # User commands
    # ------------------------------------------------------------------
    CAPTURE_START = "CAPTURE_START"
    CAPTURE_STOP = "CAPTURE_STOP"
    ENHANCE_START = "ENHANCE_START"
    RESET = "RESET"
    COPY_TEXT = "COPY_TEXT"

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    CAPTURE_STARTED = "CAPTURE_STARTED"
    CAPTURE_ENDED = "CAPTURE_ENDED"
    CAPTURE_FAILED = "CAPTURE_FAILED"

    # ------------------------------------------------------------------
    # Transcription
    # ------------------------------------------------------------------
    TRANSCRIPTION_SUCCEEDED = "TRANSCRIPTION_SUCCEEDED"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"

    # ------------------------------------------------------------------
    # Enhancement
    # ------------------------------------------------------------------
    ENHANCEMENT_SUCCEEDED = "ENHANCEMENT_SUCCEEDED"
    ENHANCEMENT_FAILED = "ENHANCEMENT_FAILED"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    STAGE_TIMEOUT = "STAGE_TIMEOUT"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Service-Scoped Events
# =============================================================================

@dataclass(frozen=True)
class ServiceEvent(Event):
    """
    Base class for events scoped to a versioned collaborator call.

    The reducer MUST ignore events whose run_id does not match the
    run owned by the current phase.
    """

    service: Service
    run_id: int


# =============================================================================
# User Command Events
# =============================================================================

@dataclass(frozen=True)
class CaptureStart(Event):
    """User asked to start recording."""


@dataclass(frozen=True)
class CaptureStop(Event):
    """User asked to stop recording."""


@dataclass(frozen=True)
class EnhanceStart(Event):
    """User asked to enhance the current text."""


@dataclass(frozen=True)
class Reset(Event):
    """User asked to cancel everything and return to idle."""


@dataclass(frozen=True)
class CopyText(Event):
    """User asked to copy the current text to the clipboard."""


# =============================================================================
# Capture Events
# =============================================================================

@dataclass(frozen=True)
class CaptureStarted(ServiceEvent):
    """The device opened a capture and returned its handle."""
    handle: CaptureHandle


@dataclass(frozen=True)
class CaptureEnded(ServiceEvent):
    """
    The device finished teardown and produced an artifact.

    The artifact is immutable and becomes transcription input.
    """
    artifact: AudioArtifact


@dataclass(frozen=True)
class CaptureFailed(ServiceEvent):
    """Capture setup or teardown failed."""
    failure: FailureKind
    reason: str = ""


# =============================================================================
# Transcription Events
# =============================================================================

@dataclass(frozen=True)
class TranscriptionSucceeded(ServiceEvent):
    """Transcription produced text."""
    text: str


@dataclass(frozen=True)
class TranscriptionFailed(ServiceEvent):
    """Transcription service failed."""
    failure: FailureKind
    reason: str = ""


# =============================================================================
# Enhancement Events
# =============================================================================

@dataclass(frozen=True)
class EnhancementSucceeded(ServiceEvent):
    """Enhancement produced rewritten text."""
    text: str


@dataclass(frozen=True)
class EnhancementFailed(ServiceEvent):
    """Enhancement service failed."""
    failure: FailureKind
    reason: str = ""


# =============================================================================
# Timer Events
# =============================================================================

@dataclass(frozen=True)
class StageTimeout(ServiceEvent):
    """
    The stage timer for (service, run_id) expired.

    Resolved exactly like a failure of that stage.
    """

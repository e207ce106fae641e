"""
Side-effect command definitions for the orchestrator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from audio.artifact import AudioArtifact, CaptureHandle
from orchestrator.enums.failure import FailureKind
from orchestrator.enums.service import Service

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Capture
    BEGIN_CAPTURE = "BEGIN_CAPTURE"
    END_CAPTURE = "END_CAPTURE"
    CANCEL_CAPTURE = "CANCEL_CAPTURE"

    # Transcription
    START_TRANSCRIPTION = "START_TRANSCRIPTION"
    CANCEL_TRANSCRIPTION = "CANCEL_TRANSCRIPTION"

    # Enhancement
    START_ENHANCEMENT = "START_ENHANCEMENT"
    CANCEL_ENHANCEMENT = "CANCEL_ENHANCEMENT"

    # Delivery
    NOTIFY = "NOTIFY"
    COPY_TO_CLIPBOARD = "COPY_TO_CLIPBOARD"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Capture Commands
# =============================================================================

@dataclass(frozen=True)
class BeginCapture(Command):
    """Request a new capture handle from the device."""
    run_id: int
    command_type: CommandType = CommandType.BEGIN_CAPTURE


@dataclass(frozen=True)
class EndCapture(Command):
    """Request teardown of an open capture and its artifact."""
    run_id: int
    handle: CaptureHandle
    command_type: CommandType = CommandType.END_CAPTURE


@dataclass(frozen=True)
class CancelCapture(Command):
    """
    Request that a capture be abandoned.

    handle is None when the device has not confirmed the capture yet;
    the runtime then only invalidates the pending begin call.
    """
    run_id: int
    handle: CaptureHandle | None = None
    command_type: CommandType = CommandType.CANCEL_CAPTURE


# =============================================================================
# Transcription Commands
# =============================================================================

@dataclass(frozen=True)
class StartTranscription(Command):
    """Request transcription of an artifact under a fresh token."""
    run_id: int
    artifact: AudioArtifact
    command_type: CommandType = CommandType.START_TRANSCRIPTION


@dataclass(frozen=True)
class CancelTranscription(Command):
    """Request cancellation of an in-flight transcription."""
    run_id: int
    command_type: CommandType = CommandType.CANCEL_TRANSCRIPTION


# =============================================================================
# Enhancement Commands
# =============================================================================

@dataclass(frozen=True)
class StartEnhancement(Command):
    """Request enhancement of text under a fresh token."""
    run_id: int
    text: str
    command_type: CommandType = CommandType.START_ENHANCEMENT


@dataclass(frozen=True)
class CancelEnhancement(Command):
    """Request cancellation of an in-flight enhancement."""
    run_id: int
    command_type: CommandType = CommandType.CANCEL_ENHANCEMENT


# =============================================================================
# Delivery Commands
# =============================================================================

@dataclass(frozen=True)
class Notify(Command):
    """Report one resolved failure to the notification sink."""
    failure: FailureKind
    command_type: CommandType = CommandType.NOTIFY


@dataclass(frozen=True)
class CopyToClipboard(Command):
    """Hand the current text to the clipboard sink."""
    text: str
    command_type: CommandType = CommandType.COPY_TO_CLIPBOARD


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Request to start a stage timer.

    On expiration, the runtime must inject StageTimeout(service, run_id).
    """
    timer_id: str
    duration_ms: int
    service: Service
    run_id: int
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Request to cancel a previously scheduled timer."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT

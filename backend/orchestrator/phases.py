"""
Session phase variants.

Rules:
- Each phase is an immutable value; a transition always builds a new one.
- Busy phases carry the run_id of their single outstanding operation.
- No behavior beyond the `kind` discriminant.
- Predicates live in orchestrator.state_machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from audio.artifact import CaptureHandle
from orchestrator.enums.phase import PhaseKind


# =============================================================================
# Stable phases
# =============================================================================

@dataclass(frozen=True)
class Idle:
    """No text, no activity."""
    kind: ClassVar[PhaseKind] = PhaseKind.IDLE


@dataclass(frozen=True)
class Transcribed:
    """Holds the last accepted transcription."""
    text: str
    kind: ClassVar[PhaseKind] = PhaseKind.TRANSCRIBED


@dataclass(frozen=True)
class Enhanced:
    """Holds the last accepted enhancement."""
    text: str
    kind: ClassVar[PhaseKind] = PhaseKind.ENHANCED


# Last accepted result, kept by busy phases so a failure can fall back to it
TextPhase = Union[Transcribed, Enhanced]


# =============================================================================
# Busy phases
# =============================================================================

@dataclass(frozen=True)
class Capturing:
    """
    Audio capture in flight.

    handle:
        None until the device confirms the capture has started.

    stopping:
        True once teardown has been handed to the device.

    fallback:
        Last accepted result before this capture began. Used for
        recovery only; it is never shown as current text.
    """
    run_id: int
    handle: CaptureHandle | None = None
    stopping: bool = False
    fallback: TextPhase | None = None
    kind: ClassVar[PhaseKind] = PhaseKind.CAPTURING


@dataclass(frozen=True)
class Transcribing:
    """Transcription in flight for a completed audio artifact."""
    run_id: int
    fallback: TextPhase | None = None
    kind: ClassVar[PhaseKind] = PhaseKind.TRANSCRIBING


@dataclass(frozen=True)
class Enhancing:
    """Enhancement in flight for base_text."""
    base_text: str
    run_id: int
    kind: ClassVar[PhaseKind] = PhaseKind.ENHANCING


SessionPhase = Union[Idle, Capturing, Transcribing, Transcribed, Enhancing, Enhanced]

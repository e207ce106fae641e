"""
Session phase predicates.

Pure, side-effect-free views over a SessionPhase.

Rules:
- No transitions live here; the reducer computes transitions
  using these predicates.
- can_capture() and is_actively_capturing() are deliberately distinct:
  the capture control must stay actionable while capture is underway
  so that it can be used to stop.
"""

from __future__ import annotations

from orchestrator.phases import (
    Capturing,
    Enhanced,
    Enhancing,
    Idle,
    SessionPhase,
    Transcribed,
    Transcribing,
)


def can_capture(phase: SessionPhase) -> bool:
    """True when the capture control is actionable (start or stop)."""
    return isinstance(phase, (Idle, Capturing, Transcribed, Enhanced))


def accepts_capture_start(phase: SessionPhase) -> bool:
    """
    True when a new capture may be started from this phase.

    Transcribing is included: a new recording supersedes the
    in-flight transcription. Capturing is excluded: a second start
    while recording must not open another handle.
    """
    return isinstance(phase, (Idle, Transcribing, Transcribed, Enhanced))


def is_busy(phase: SessionPhase) -> bool:
    """True while exactly one collaborator call is outstanding."""
    return isinstance(phase, (Capturing, Transcribing, Enhancing))


def is_stable(phase: SessionPhase) -> bool:
    """True when nothing is in flight."""
    return not is_busy(phase)


def is_actively_capturing(phase: SessionPhase) -> bool:
    """True only while recording (drives the recording indicator)."""
    return isinstance(phase, Capturing)


def current_text(phase: SessionPhase) -> str:
    """
    Session-visible text projection.

    Capture clears the stored text, so Capturing and Transcribing
    project nothing even when a fallback result is retained.
    """
    if isinstance(phase, (Transcribed, Enhanced)):
        return phase.text
    if isinstance(phase, Enhancing):
        return phase.base_text
    return ""


def can_enhance(phase: SessionPhase) -> bool:
    """True only for a stable text phase with non-empty text."""
    return isinstance(phase, (Transcribed, Enhanced)) and current_text(phase) != ""


def status_message(phase: SessionPhase) -> str:
    """Short human-readable status line for the phase."""
    if isinstance(phase, Idle):
        return "Tap the record button to get started"
    if isinstance(phase, Capturing):
        if phase.stopping:
            return "Finishing recording..."
        return "Recording... Tap stop when finished"
    if isinstance(phase, Transcribing):
        return "Transcribing audio..."
    if isinstance(phase, Transcribed):
        return "Transcription complete"
    if isinstance(phase, Enhancing):
        return "Processing with AI..."
    if isinstance(phase, Enhanced):
        return "Processing complete"
    raise ValueError(phase)

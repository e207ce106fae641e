"""
Error-recovery policy.

Purpose:
- Map (failing phase, failure kind) to the stable phase to resume in
- Keep the reducer pure
- Never discard previously accepted text

This module contains NO timers, NO async, NO side effects.

Table:

    failing phase    resume phase
    -------------    ---------------------------------------------
    Capturing        Idle
    Transcribing     fallback (Transcribed/Enhanced) if any, else Idle
    Enhancing        Transcribed(base_text)
"""
from __future__ import annotations

from orchestrator.enums.failure import FailureCategory, FailureKind
from orchestrator.phases import (
    Capturing,
    Enhancing,
    Idle,
    SessionPhase,
    Transcribed,
    Transcribing,
)


# =============================================================================
# Policy
# =============================================================================

def expected_category(phase: SessionPhase) -> FailureCategory:
    """
    Failure category a busy phase can produce.

    Raises:
        ValueError for stable phases (nothing can fail there).
    """
    if isinstance(phase, Capturing):
        return FailureCategory.CAPTURE_ERROR
    if isinstance(phase, Transcribing):
        return FailureCategory.TRANSCRIPTION_ERROR
    if isinstance(phase, Enhancing):
        return FailureCategory.ENHANCEMENT_ERROR
    raise ValueError(f"no failure possible in stable phase {phase.kind.value}")


def resume_phase(failing: SessionPhase, failure: FailureKind) -> SessionPhase:
    """
    Return the stable phase to resume in after `failure` hit `failing`.

    The failure kind must belong to the failing phase's stage; a
    mismatched pair indicates a reducer bug and raises ValueError.
    """
    category = expected_category(failing)
    if failure.category is not category:
        raise ValueError(
            f"{failure.value} cannot occur in phase {failing.kind.value}"
        )

    if isinstance(failing, Capturing):
        # Audio setup failed; nothing partial worth preserving
        return Idle()

    if isinstance(failing, Transcribing):
        # Audio is already consumed; fall back to the last accepted result
        if failing.fallback is not None:
            return failing.fallback
        return Idle()

    if isinstance(failing, Enhancing):
        return Transcribed(text=failing.base_text)

    raise ValueError(failing)

"""
Session phase discriminant.

Rules:
- This enum names the phases only.
- No behavior, no helper methods, no side effects.
- Phase payloads live in orchestrator.phases.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class PhaseKind(str, Enum):
    """
    Mutually exclusive lifecycle phases of a dictation session.

    Busy phases (one outstanding async operation each):
    CAPTURING, TRANSCRIBING, ENHANCING

    Stable phases (nothing in flight):
    IDLE, TRANSCRIBED, ENHANCED
    """

    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    TRANSCRIBING = "TRANSCRIBING"
    TRANSCRIBED = "TRANSCRIBED"
    ENHANCING = "ENHANCING"
    ENHANCED = "ENHANCED"

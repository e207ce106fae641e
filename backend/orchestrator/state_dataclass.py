"""
Authoritative orchestrator state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from constants import (
    CAPTURE_TIMEOUT_MS,
    ENHANCEMENT_TIMEOUT_MS,
    TRANSCRIPTION_TIMEOUT_MS,
)
from orchestrator.enums.failure import FailureKind
from orchestrator.phases import Idle, SessionPhase
from orchestrator.run_ids import RunIds


# =============================================================================
# Stage timeouts
# =============================================================================

@dataclass(frozen=True)
class StageTimeouts:
    """Per-stage timeout budget in milliseconds."""
    capture_ms: int = CAPTURE_TIMEOUT_MS
    transcription_ms: int = TRANSCRIPTION_TIMEOUT_MS
    enhancement_ms: int = ENHANCEMENT_TIMEOUT_MS


# =============================================================================
# Orchestrator State
# =============================================================================

@dataclass(frozen=True)
class OrchestratorState:
    """Immutable snapshot of all orchestrator-owned state."""

    # ------------------------------------------------------------------
    # Phase
    # ------------------------------------------------------------------
    phase: SessionPhase = field(default_factory=Idle)

    # ------------------------------------------------------------------
    # Run/version tracking
    # ------------------------------------------------------------------
    active_runs: RunIds = field(default_factory=RunIds)

    # ------------------------------------------------------------------
    # Error handling (display only, never control flow)
    # ------------------------------------------------------------------
    last_failure: FailureKind | None = None
    last_failure_reason: str | None = None

    # ------------------------------------------------------------------
    # Timer budget
    # ------------------------------------------------------------------
    timeouts: StageTimeouts = field(default_factory=StageTimeouts)

"""
Pure orchestrator reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (phase, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from orchestrator.commands import (
    BeginCapture,
    CancelCapture,
    CancelEnhancement,
    CancelTimer,
    CancelTranscription,
    Command,
    CopyToClipboard,
    EndCapture,
    LogEvent,
    Notify,
    StartEnhancement,
    StartTimer,
    StartTranscription,
)
from orchestrator.enums.failure import FailureKind, timeout_failure_for
from orchestrator.enums.service import Service
from orchestrator.events import (
    CaptureEnded,
    CaptureFailed,
    CaptureStart,
    CaptureStarted,
    CaptureStop,
    CopyText,
    EnhanceStart,
    EnhancementFailed,
    EnhancementSucceeded,
    Event,
    Reset,
    StageTimeout,
    TranscriptionFailed,
    TranscriptionSucceeded,
)
from orchestrator.phases import (
    Capturing,
    Enhanced,
    Enhancing,
    Idle,
    SessionPhase,
    TextPhase,
    Transcribed,
    Transcribing,
)
from orchestrator.recovery import resume_phase
from orchestrator.run_ids import RunIds
from orchestrator.state_dataclass import OrchestratorState
from orchestrator.state_machine import (
    accepts_capture_start,
    can_enhance,
    current_text,
)


# =============================================================================
# Run ID & cancellation invariants
# =============================================================================
# - Run IDs are bumped ONLY when a new operation starts
# - Cancellation never bumps run IDs
# - A busy phase owns exactly one run; leaving it cancels or completes that run
# - Completions whose run_id no longer matches the phase are dropped

# =============================================================================
# Timer IDs
# =============================================================================

TIMER_CAPTURE = "capture_timeout"
TIMER_TRANSCRIPTION = "transcription_timeout"
TIMER_ENHANCEMENT = "enhancement_timeout"


# =============================================================================
# Small helpers
# =============================================================================

def _bump_run_id(active_runs: RunIds, service: Service) -> RunIds:
    if service is Service.CAPTURE:
        return replace(active_runs, capture=active_runs.capture + 1)
    if service is Service.TRANSCRIPTION:
        return replace(active_runs, transcription=active_runs.transcription + 1)
    if service is Service.ENHANCEMENT:
        return replace(active_runs, enhancement=active_runs.enhancement + 1)
    raise ValueError(service)


def _timer_id_for(service: Service) -> str:
    if service is Service.CAPTURE:
        return TIMER_CAPTURE
    if service is Service.TRANSCRIPTION:
        return TIMER_TRANSCRIPTION
    if service is Service.ENHANCEMENT:
        return TIMER_ENHANCEMENT
    raise ValueError(service)


def _timeout_ms_for(state: OrchestratorState, service: Service) -> int:
    if service is Service.CAPTURE:
        return state.timeouts.capture_ms
    if service is Service.TRANSCRIPTION:
        return state.timeouts.transcription_ms
    if service is Service.ENHANCEMENT:
        return state.timeouts.enhancement_ms
    raise ValueError(service)


def _service_of(phase: SessionPhase) -> Service | None:
    if isinstance(phase, Capturing):
        return Service.CAPTURE
    if isinstance(phase, Transcribing):
        return Service.TRANSCRIPTION
    if isinstance(phase, Enhancing):
        return Service.ENHANCEMENT
    return None


def _owns_run(phase: SessionPhase, service: Service, run_id: int) -> bool:
    """True iff `phase` is the busy phase owning (service, run_id)."""
    if _service_of(phase) is not service:
        return False
    return phase.run_id == run_id  # type: ignore[union-attr]


def _start_timer(state: OrchestratorState, service: Service, run_id: int) -> StartTimer:
    return StartTimer(
        timer_id=_timer_id_for(service),
        duration_ms=_timeout_ms_for(state, service),
        service=service,
        run_id=run_id,
    )


def _log(
    state: OrchestratorState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "phase": state.phase.kind.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "run_ids": {
                "capture": state.active_runs.capture,
                "transcription": state.active_runs.transcription,
                "enhancement": state.active_runs.enhancement,
            },
            "last_failure": (
                state.last_failure.value if state.last_failure is not None else None
            ),
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(
    state: OrchestratorState, event: Event, reason: str
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _transition(
    state: OrchestratorState,
    new_state: OrchestratorState,
    event: Event,
    source: str,
    cmds: list[Command],
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    """Attach the state_changed log and order logs last."""
    return (
        new_state,
        _logs_last(tuple(cmds) + (
            _log(
                new_state,
                event,
                "state_changed",
                {
                    "from_phase": state.phase.kind.value,
                    "to_phase": new_state.phase.kind.value,
                    "source": source,
                },
            ),
        )),
    )


def _cancel_phase_run(phase: SessionPhase) -> list[Command]:
    """
    Cancel the single outstanding operation of a busy phase.

    Stable phases own nothing and yield no commands.
    """
    if isinstance(phase, Capturing):
        return [
            CancelCapture(run_id=phase.run_id, handle=phase.handle),
            CancelTimer(timer_id=TIMER_CAPTURE),
        ]
    if isinstance(phase, Transcribing):
        return [
            CancelTranscription(run_id=phase.run_id),
            CancelTimer(timer_id=TIMER_TRANSCRIPTION),
        ]
    if isinstance(phase, Enhancing):
        return [
            CancelEnhancement(run_id=phase.run_id),
            CancelTimer(timer_id=TIMER_ENHANCEMENT),
        ]
    return []


def _fail(
    state: OrchestratorState,
    event: Event,
    failure: FailureKind,
    reason: str,
    extra: list[Command] | None = None,
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    """
    Resolve a stage failure via the recovery policy.

    Emits exactly one Notify per resolved failure.
    """
    service = _service_of(state.phase)
    if service is None:
        raise ValueError(f"failure {failure.value} outside a busy phase")

    resumed = resume_phase(state.phase, failure)
    new_state = replace(
        state,
        phase=resumed,
        last_failure=failure,
        last_failure_reason=reason or None,
    )
    cmds: list[Command] = list(extra or [])
    cmds.append(CancelTimer(timer_id=_timer_id_for(service)))
    cmds.append(Notify(failure=failure))
    cmds.append(
        _log(
            new_state,
            event,
            "failure_recovered",
            {
                "failure": failure.value,
                "category": failure.category.value,
                "reason": reason,
                "failed_phase": state.phase.kind.value,
                "resumed_phase": resumed.kind.value,
            },
        )
    )
    return _transition(state, new_state, event, "failure", cmds)


# =============================================================================
# User commands
# =============================================================================

def _on_capture_start(
    state: OrchestratorState, event: CaptureStart
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    phase = state.phase

    if isinstance(phase, Capturing):
        # One handle at a time; a repeated start must not open another
        return _ignore(state, event, "capture_already_active")

    if not accepts_capture_start(phase):
        return _ignore(state, event, "capture_not_allowed")

    cmds: list[Command] = []
    fallback: TextPhase | None = None

    if isinstance(phase, (Transcribed, Enhanced)):
        fallback = phase
    elif isinstance(phase, Transcribing):
        # Supersession: the new recording invalidates the in-flight transcription
        fallback = phase.fallback
        cmds.extend(_cancel_phase_run(phase))
        cmds.append(
            _log(
                state,
                event,
                "supersede_transcription",
                {"transcription_run_id": phase.run_id},
            )
        )

    new_runs = _bump_run_id(state.active_runs, Service.CAPTURE)
    new_state = replace(
        state,
        phase=Capturing(run_id=new_runs.capture, fallback=fallback),
        active_runs=new_runs,
        last_failure=None,
        last_failure_reason=None,
    )
    cmds.append(BeginCapture(run_id=new_runs.capture))
    cmds.append(_start_timer(new_state, Service.CAPTURE, new_runs.capture))
    cmds.append(
        _log(
            new_state,
            event,
            "begin_capture",
            {
                "capture_run_id": new_runs.capture,
                "has_fallback": fallback is not None,
            },
        )
    )
    return _transition(state, new_state, event, "capture_start", cmds)


def _on_capture_stop(
    state: OrchestratorState, event: CaptureStop
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    phase = state.phase

    if not isinstance(phase, Capturing):
        return _ignore(state, event, "not_capturing")

    if phase.stopping:
        return _ignore(state, event, "capture_already_stopping")

    if phase.handle is None:
        # Device never confirmed the capture; there is nothing to tear down
        return _fail(
            state,
            event,
            FailureKind.CAPTURE_NO_AUDIO,
            "stopped_before_capture_started",
            extra=[CancelCapture(run_id=phase.run_id)],
        )

    new_state = replace(state, phase=replace(phase, stopping=True))
    cmds: list[Command] = [
        EndCapture(run_id=phase.run_id, handle=phase.handle),
        _start_timer(new_state, Service.CAPTURE, phase.run_id),
        _log(
            new_state,
            event,
            "end_capture",
            {
                "capture_run_id": phase.run_id,
                "handle_id": phase.handle.handle_id,
            },
        ),
    ]
    return new_state, _logs_last(tuple(cmds))


def _on_enhance_start(
    state: OrchestratorState, event: EnhanceStart
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    if not can_enhance(state.phase):
        return _ignore(state, event, "enhance_not_allowed")

    base_text = current_text(state.phase)
    new_runs = _bump_run_id(state.active_runs, Service.ENHANCEMENT)
    new_state = replace(
        state,
        phase=Enhancing(base_text=base_text, run_id=new_runs.enhancement),
        active_runs=new_runs,
    )
    cmds: list[Command] = [
        StartEnhancement(run_id=new_runs.enhancement, text=base_text),
        _start_timer(new_state, Service.ENHANCEMENT, new_runs.enhancement),
        _log(
            new_state,
            event,
            "start_enhancement",
            {
                "enhancement_run_id": new_runs.enhancement,
                "text_len": len(base_text),
            },
        ),
    ]
    return _transition(state, new_state, event, "enhance_start", cmds)


def _on_reset(
    state: OrchestratorState, event: Reset
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    if isinstance(state.phase, Idle):
        new_state = replace(state, last_failure=None, last_failure_reason=None)
        return new_state, (_log(new_state, event, "reset_in_idle"),)

    cmds = _cancel_phase_run(state.phase)
    new_state = replace(
        state,
        phase=Idle(),
        last_failure=None,
        last_failure_reason=None,
    )
    cmds.append(
        _log(
            new_state,
            event,
            "reset",
            {"discarded_phase": state.phase.kind.value},
        )
    )
    return _transition(state, new_state, event, "reset", cmds)


def _on_copy_text(
    state: OrchestratorState, event: CopyText
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    text = current_text(state.phase)
    if not text:
        return _ignore(state, event, "nothing_to_copy")
    return state, (
        CopyToClipboard(text=text),
        _log(state, event, "copy_text", {"text_len": len(text)}),
    )


# =============================================================================
# Capture completions
# =============================================================================

def _on_capture_started(
    state: OrchestratorState, event: CaptureStarted
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    phase = state.phase

    if (
        isinstance(phase, Capturing)
        and phase.run_id == event.run_id
        and phase.handle is None
        and not phase.stopping
    ):
        new_state = replace(state, phase=replace(phase, handle=event.handle))
        return new_state, _logs_last((
            CancelTimer(timer_id=TIMER_CAPTURE),
            _log(
                new_state,
                event,
                "capture_started",
                {
                    "capture_run_id": event.run_id,
                    "handle_id": event.handle.handle_id,
                },
            ),
        ))

    # The run was superseded while the device was opening; release the orphan
    return state, _logs_last((
        CancelCapture(run_id=event.run_id, handle=event.handle),
        _log(
            state,
            event,
            "ignore",
            {
                "reason": "capture_started_stale",
                "handle_id": event.handle.handle_id,
            },
        ),
    ))


def _on_capture_ended(
    state: OrchestratorState, event: CaptureEnded
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    phase = state.phase

    if not (
        isinstance(phase, Capturing)
        and phase.run_id == event.run_id
        and phase.stopping
    ):
        return _ignore(state, event, "capture_ended_stale")

    if event.artifact.size_bytes == 0:
        return _fail(state, event, FailureKind.CAPTURE_NO_AUDIO, "empty_artifact")

    new_runs = _bump_run_id(state.active_runs, Service.TRANSCRIPTION)
    new_state = replace(
        state,
        phase=Transcribing(run_id=new_runs.transcription, fallback=phase.fallback),
        active_runs=new_runs,
    )
    cmds: list[Command] = [
        CancelTimer(timer_id=TIMER_CAPTURE),
        StartTranscription(run_id=new_runs.transcription, artifact=event.artifact),
        _start_timer(new_state, Service.TRANSCRIPTION, new_runs.transcription),
        _log(
            new_state,
            event,
            "start_transcription",
            {
                "transcription_run_id": new_runs.transcription,
                "artifact_bytes": event.artifact.size_bytes,
                "artifact_duration_s": round(event.artifact.duration_s, 3),
            },
        ),
    ]
    return _transition(state, new_state, event, "capture_ended", cmds)


def _on_capture_failed(
    state: OrchestratorState, event: CaptureFailed
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    phase = state.phase
    if not _owns_run(phase, Service.CAPTURE, event.run_id):
        return _ignore(state, event, "capture_failed_stale")

    extra: list[Command] = []
    if isinstance(phase, Capturing) and phase.handle is not None and not phase.stopping:
        # Failed mid-recording; make sure the device lets go of the handle
        extra.append(CancelCapture(run_id=phase.run_id, handle=phase.handle))

    return _fail(state, event, event.failure, event.reason, extra=extra)


# =============================================================================
# Transcription completions
# =============================================================================

def _on_transcription_succeeded(
    state: OrchestratorState, event: TranscriptionSucceeded
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    if not _owns_run(state.phase, Service.TRANSCRIPTION, event.run_id):
        return _ignore(state, event, "transcription_result_stale")

    text = event.text.strip()
    if not text:
        return _fail(state, event, FailureKind.TRANSCRIPTION_NO_SPEECH, "empty_text")

    new_state = replace(state, phase=Transcribed(text=text))
    cmds: list[Command] = [
        CancelTimer(timer_id=TIMER_TRANSCRIPTION),
        _log(
            new_state,
            event,
            "transcription_accepted",
            {"transcription_run_id": event.run_id, "text_len": len(text)},
        ),
    ]
    return _transition(state, new_state, event, "transcription_succeeded", cmds)


def _on_transcription_failed(
    state: OrchestratorState, event: TranscriptionFailed
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    if not _owns_run(state.phase, Service.TRANSCRIPTION, event.run_id):
        return _ignore(state, event, "transcription_failure_stale")
    return _fail(state, event, event.failure, event.reason)


# =============================================================================
# Enhancement completions
# =============================================================================

def _on_enhancement_succeeded(
    state: OrchestratorState, event: EnhancementSucceeded
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    if not _owns_run(state.phase, Service.ENHANCEMENT, event.run_id):
        return _ignore(state, event, "enhancement_result_stale")

    text = event.text.strip()
    if not text:
        return _fail(state, event, FailureKind.ENHANCEMENT_FAILED, "empty_result")

    new_state = replace(state, phase=Enhanced(text=text))
    cmds: list[Command] = [
        CancelTimer(timer_id=TIMER_ENHANCEMENT),
        _log(
            new_state,
            event,
            "enhancement_accepted",
            {"enhancement_run_id": event.run_id, "text_len": len(text)},
        ),
    ]
    return _transition(state, new_state, event, "enhancement_succeeded", cmds)


def _on_enhancement_failed(
    state: OrchestratorState, event: EnhancementFailed
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    if not _owns_run(state.phase, Service.ENHANCEMENT, event.run_id):
        return _ignore(state, event, "enhancement_failure_stale")
    return _fail(state, event, event.failure, event.reason)


# =============================================================================
# Timers
# =============================================================================

def _on_stage_timeout(
    state: OrchestratorState, event: StageTimeout
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    if not _owns_run(state.phase, event.service, event.run_id):
        return _ignore(state, event, "stage_timeout_stale")

    # Stop the collaborator; the timer itself has already fired
    cancel_cmds = [
        cmd for cmd in _cancel_phase_run(state.phase)
        if not isinstance(cmd, CancelTimer)
    ]
    return _fail(
        state,
        event,
        timeout_failure_for(event.service),
        f"{event.service.value.lower()}_timeout",
        extra=cancel_cmds,
    )


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(
    state: OrchestratorState, event: Event
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    """
    Pure reducer for the dictation session state machine.

    Given the current orchestrator state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (phase, event) pair is handled or explicitly ignored
    - Version-safe: ignores completions with stale run IDs
    """
    # ------------------------------------------------------------------
    # User commands
    # ------------------------------------------------------------------
    if isinstance(event, Reset):
        return _on_reset(state, event)

    if isinstance(event, CaptureStart):
        return _on_capture_start(state, event)

    if isinstance(event, CaptureStop):
        return _on_capture_stop(state, event)

    if isinstance(event, EnhanceStart):
        return _on_enhance_start(state, event)

    if isinstance(event, CopyText):
        return _on_copy_text(state, event)

    # ------------------------------------------------------------------
    # Collaborator completions
    # ------------------------------------------------------------------
    if isinstance(event, CaptureStarted):
        return _on_capture_started(state, event)

    if isinstance(event, CaptureEnded):
        return _on_capture_ended(state, event)

    if isinstance(event, CaptureFailed):
        return _on_capture_failed(state, event)

    if isinstance(event, TranscriptionSucceeded):
        return _on_transcription_succeeded(state, event)

    if isinstance(event, TranscriptionFailed):
        return _on_transcription_failed(state, event)

    if isinstance(event, EnhancementSucceeded):
        return _on_enhancement_succeeded(state, event)

    if isinstance(event, EnhancementFailed):
        return _on_enhancement_failed(state, event)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    if isinstance(event, StageTimeout):
        return _on_stage_timeout(state, event)

    return _ignore(state, event, "unhandled_event")

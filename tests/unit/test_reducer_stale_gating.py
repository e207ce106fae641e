"""
Cancellation and supersession semantics.

Reducer-only guarantees:
- Run ID correctness
- Stale completions never alter phase or text
- Timeouts resolve exactly like failures of the same stage
"""

from audio.artifact import CaptureHandle
from orchestrator.commands import (
    CancelCapture,
    CancelEnhancement,
    CancelTimer,
    CancelTranscription,
    LogEvent,
    Notify,
)
from orchestrator.enums.failure import FailureKind
from orchestrator.enums.service import Service
from orchestrator.events import (
    CaptureFailed,
    CaptureStart,
    CaptureStarted,
    EventType,
    StageTimeout,
    TranscriptionSucceeded,
)
from orchestrator.phases import (
    Capturing,
    Enhanced,
    Enhancing,
    Idle,
    Transcribed,
    Transcribing,
)
from orchestrator.reducer import TIMER_ENHANCEMENT, TIMER_TRANSCRIPTION, reduce
from orchestrator.run_ids import RunIds
from orchestrator.state_dataclass import OrchestratorState


def _timeout(service: Service, run_id: int) -> StageTimeout:
    return StageTimeout(
        event_type=EventType.STAGE_TIMEOUT,
        ts_ms=0,
        service=service,
        run_id=run_id,
    )


def test_capture_start_supersedes_transcription():
    """
    Starting a capture while Transcribing cancels the in-flight
    transcription and keeps its fallback for recovery.
    """
    state = OrchestratorState(
        phase=Transcribing(run_id=4, fallback=Transcribed(text="X")),
        active_runs=RunIds(capture=4, transcription=4),
    )

    new_state, cmds = reduce(
        state, CaptureStart(event_type=EventType.CAPTURE_START, ts_ms=0)
    )

    assert new_state.phase == Capturing(run_id=5, fallback=Transcribed(text="X"))
    assert CancelTranscription(run_id=4) in cmds
    assert CancelTimer(timer_id=TIMER_TRANSCRIPTION) in cmds
    # Transcription run id is not bumped by cancellation
    assert new_state.active_runs.transcription == 4


def test_late_transcription_result_is_ignored():
    """
    A result for a superseded transcription must not alter phase or text.
    """
    state = OrchestratorState(
        phase=Capturing(run_id=5, fallback=Transcribed(text="X")),
        active_runs=RunIds(capture=5, transcription=4),
    )

    event = TranscriptionSucceeded(
        event_type=EventType.TRANSCRIPTION_SUCCEEDED,
        ts_ms=0,
        service=Service.TRANSCRIPTION,
        run_id=4,  # stale
        text="old words",
    )

    new_state, cmds = reduce(state, event)

    assert new_state == state
    assert len(cmds) == 1
    assert isinstance(cmds[0], LogEvent)
    assert cmds[0].event["decision"] == "ignore"


def test_old_run_result_ignored_during_newer_transcription():
    state = OrchestratorState(
        phase=Transcribing(run_id=2),
        active_runs=RunIds(capture=2, transcription=2),
    )

    event = TranscriptionSucceeded(
        event_type=EventType.TRANSCRIPTION_SUCCEEDED,
        ts_ms=0,
        service=Service.TRANSCRIPTION,
        run_id=1,
        text="old",
    )

    new_state, _ = reduce(state, event)

    assert new_state == state


def test_late_capture_handle_is_released():
    """
    A handle confirmed after its run was reset is cancelled on the device.
    """
    handle = CaptureHandle(handle_id="late", started_ts_ms=0)
    state = OrchestratorState(phase=Idle(), active_runs=RunIds(capture=1))

    event = CaptureStarted(
        event_type=EventType.CAPTURE_STARTED,
        ts_ms=0,
        service=Service.CAPTURE,
        run_id=1,
        handle=handle,
    )

    new_state, cmds = reduce(state, event)

    assert new_state == state
    assert CancelCapture(run_id=1, handle=handle) in cmds


def test_stale_capture_failure_is_ignored():
    state = OrchestratorState(phase=Capturing(run_id=2), active_runs=RunIds(capture=2))

    event = CaptureFailed(
        event_type=EventType.CAPTURE_FAILED,
        ts_ms=0,
        service=Service.CAPTURE,
        run_id=1,
        failure=FailureKind.CAPTURE_START_FAILED,
    )

    new_state, cmds = reduce(state, event)

    assert new_state == state
    assert not [c for c in cmds if isinstance(c, Notify)]


def test_capture_failure_mid_recording_releases_handle():
    handle = CaptureHandle(handle_id="h1", started_ts_ms=0)
    state = OrchestratorState(
        phase=Capturing(run_id=1, handle=handle),
        active_runs=RunIds(capture=1),
    )

    event = CaptureFailed(
        event_type=EventType.CAPTURE_FAILED,
        ts_ms=0,
        service=Service.CAPTURE,
        run_id=1,
        failure=FailureKind.CAPTURE_PERMISSION_DENIED,
        reason="denied",
    )

    new_state, cmds = reduce(state, event)

    assert new_state.phase == Idle()
    assert new_state.last_failure is FailureKind.CAPTURE_PERMISSION_DENIED
    assert CancelCapture(run_id=1, handle=handle) in cmds


def test_transcription_timeout_resolves_like_failure():
    state = OrchestratorState(
        phase=Transcribing(run_id=3, fallback=Enhanced(text="E.")),
        active_runs=RunIds(capture=3, transcription=3),
    )

    new_state, cmds = reduce(state, _timeout(Service.TRANSCRIPTION, 3))

    assert new_state.phase == Enhanced(text="E.")
    assert new_state.last_failure is FailureKind.TRANSCRIPTION_TIMEOUT
    assert CancelTranscription(run_id=3) in cmds
    assert [c for c in cmds if isinstance(c, Notify)] == [
        Notify(failure=FailureKind.TRANSCRIPTION_TIMEOUT)
    ]


def test_enhancement_timeout_keeps_base_text():
    state = OrchestratorState(
        phase=Enhancing(base_text="X", run_id=2),
        active_runs=RunIds(enhancement=2),
    )

    new_state, cmds = reduce(state, _timeout(Service.ENHANCEMENT, 2))

    assert new_state.phase == Transcribed(text="X")
    assert CancelEnhancement(run_id=2) in cmds
    assert CancelTimer(timer_id=TIMER_ENHANCEMENT) in cmds


def test_capture_timeout_resumes_idle():
    state = OrchestratorState(phase=Capturing(run_id=1), active_runs=RunIds(capture=1))

    new_state, cmds = reduce(state, _timeout(Service.CAPTURE, 1))

    assert new_state.phase == Idle()
    assert new_state.last_failure is FailureKind.CAPTURE_TIMEOUT
    assert CancelCapture(run_id=1) in cmds


def test_stale_timeout_is_ignored():
    state = OrchestratorState(
        phase=Enhancing(base_text="X", run_id=3),
        active_runs=RunIds(enhancement=3),
    )

    new_state, cmds = reduce(state, _timeout(Service.ENHANCEMENT, 2))

    assert new_state == state
    assert cmds[0].event["details"]["reason"] == "stage_timeout_stale"  # type: ignore[attr-defined]


def test_timeout_for_other_stage_is_ignored():
    state = OrchestratorState(phase=Transcribed(text="X"))

    new_state, _ = reduce(state, _timeout(Service.TRANSCRIPTION, 1))

    assert new_state == state

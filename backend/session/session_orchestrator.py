"""
Session orchestrator: the command and observation surface of one
dictation session.

Responsibilities:
- Translate UI commands into orchestrator events
- Own the Runtime (which owns the authoritative state)
- Publish an immutable SessionSnapshot after every committed transition

NOT responsible for:
- Any transition logic (reducer)
- Calling collaborators (runtime)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable
from uuid import uuid4

from observability.logger import log_event
from orchestrator.enums.failure import FailureKind
from orchestrator.enums.phase import PhaseKind
from orchestrator.events import (
    CaptureStart,
    CaptureStop,
    CopyText,
    EnhanceStart,
    Event,
    EventType,
    Reset,
)
from orchestrator.phases import SessionPhase
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import OrchestratorState, StageTimeouts
from orchestrator.state_machine import (
    can_capture,
    can_enhance,
    current_text,
    is_actively_capturing,
    is_busy,
    status_message,
)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Snapshot
# ------------------------------------------------------------------

@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only projection of the session for observers."""

    phase: SessionPhase
    current_text: str
    can_capture: bool
    can_enhance: bool
    is_busy: bool
    is_actively_capturing: bool
    status_message: str
    last_failure: FailureKind | None

    @property
    def phase_kind(self) -> PhaseKind:
        return self.phase.kind

    @classmethod
    def from_state(cls, state: OrchestratorState) -> SessionSnapshot:
        phase = state.phase
        return cls(
            phase=phase,
            current_text=current_text(phase),
            can_capture=can_capture(phase),
            can_enhance=can_enhance(phase),
            is_busy=is_busy(phase),
            is_actively_capturing=is_actively_capturing(phase),
            status_message=status_message(phase),
            last_failure=state.last_failure,
        )


SnapshotObserver = Callable[[SessionSnapshot], None]


# ------------------------------------------------------------------
# SessionOrchestrator
# ------------------------------------------------------------------

class SessionOrchestrator:
    """
    One orchestrator == one dictation session.

    Every command returns as soon as its transition has committed;
    collaborator calls continue in the background and their outcomes
    arrive through the same serialized path.

    Commands whose precondition fails are logged no-ops, never errors.
    """

    def __init__(
        self,
        *,
        context: RuntimeExecutionContext,
        timeouts: StageTimeouts | None = None,
    ) -> None:
        self._session_id = context.session_id
        self._observers: list[SnapshotObserver] = []
        self._runtime = Runtime(
            initial_state=OrchestratorState(timeouts=timeouts or StageTimeouts()),
            context=context,
            on_transition=self._on_transition,
        )
        self._snapshot = SessionSnapshot.from_state(self._runtime.state)

    # ------------------------------------------------------------------
    # Observable surface
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> OrchestratorState:
        return self._runtime.state

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def phase(self) -> SessionPhase:
        return self._runtime.state.phase

    @property
    def current_text(self) -> str:
        return self._snapshot.current_text

    @property
    def last_failure(self) -> FailureKind | None:
        return self._snapshot.last_failure

    def subscribe(self, observer: SnapshotObserver) -> Callable[[], None]:
        """
        Register an observer for every new snapshot.

        Returns a callable that removes the observer; calling it twice
        is harmless.
        """
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Command surface
    # ------------------------------------------------------------------

    async def start_capture(self) -> None:
        await self._dispatch(CaptureStart(event_type=EventType.CAPTURE_START, ts_ms=_now_ms()))

    async def stop_capture(self) -> None:
        await self._dispatch(CaptureStop(event_type=EventType.CAPTURE_STOP, ts_ms=_now_ms()))

    async def toggle_capture(self) -> None:
        """Single record button: stop while recording, otherwise start."""
        if is_actively_capturing(self.phase):
            await self.stop_capture()
        else:
            await self.start_capture()

    async def start_enhancement(self) -> None:
        await self._dispatch(EnhanceStart(event_type=EventType.ENHANCE_START, ts_ms=_now_ms()))

    async def cancel_and_reset(self) -> None:
        await self._dispatch(Reset(event_type=EventType.RESET, ts_ms=_now_ms()))

    async def copy_text(self) -> None:
        await self._dispatch(CopyText(event_type=EventType.COPY_TEXT, ts_ms=_now_ms()))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def settle(self) -> None:
        """Wait until every in-flight collaborator call has reported."""
        await self._runtime.settle()

    async def shutdown(self) -> None:
        await self._runtime.shutdown()
        self._observers.clear()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _dispatch(self, event: Event) -> None:
        await self._runtime.handle_event(event)

    def _on_transition(
        self,
        prev_state: OrchestratorState,
        new_state: OrchestratorState,
    ) -> None:
        snapshot = SessionSnapshot.from_state(new_state)
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot

        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "OBSERVER_ERROR",
                    "session_id": self._session_id,
                    "phase": new_state.phase.kind.value,
                    "previous_phase": prev_state.phase.kind.value,
                    "error": f"{type(exc).__name__}: {exc}",
                })

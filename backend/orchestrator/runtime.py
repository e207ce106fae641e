"""
Runtime execution shell for a single dictation session.

Responsibilities:
- Own orchestrator state
- Call pure reducer
- Execute commands with side effects (collaborator calls, timers, delivery)
- Convert collaborator outcomes and timer expiry into events
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from adapters.errors import CollaboratorError
from audio.artifact import AudioArtifact, CaptureHandle
from constants import CANCEL_ACK_TIMEOUT_MS
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.cancellation import CancellationManager, CancellationToken
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
from orchestrator.enums.failure import FailureKind, default_failure_for
from orchestrator.enums.service import Service
from orchestrator.events import (
    CaptureEnded,
    CaptureFailed,
    CaptureStarted,
    EnhancementFailed,
    EnhancementSucceeded,
    Event,
    EventType,
    Reset,
    StageTimeout,
    TranscriptionFailed,
    TranscriptionSucceeded,
)
from orchestrator.reducer import reduce
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import OrchestratorState
from orchestrator.state_machine import is_busy


TransitionObserver = Callable[[OrchestratorState, OrchestratorState], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _failure_from(exc: BaseException, service: Service) -> FailureKind:
    """Classify an exception escaping a collaborator of `service`."""
    default = default_failure_for(service)
    if isinstance(exc, CollaboratorError) and exc.kind.category is default.category:
        return exc.kind
    return default


def _reason_from(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class Runtime:
    """
    Runtime execution boundary for a single dictation session.

    Responsibilities:
    - Own the authoritative orchestrator state
    - Act as the universal event sink for the session
      (user commands, collaborator outcomes, timer events)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects
    - Schedule and cancel stage timers

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - State is swapped and observers notified before any side effect
    - Command execution never awaits a collaborator; every collaborator
      call runs as its own task and re-enters through handle_event()
    - Therefore no two events are ever reduced concurrently
    """

    def __init__(
        self,
        *,
        initial_state: OrchestratorState,
        context: RuntimeExecutionContext,
        on_transition: TransitionObserver | None = None,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._on_transition = on_transition
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

        # Token lifecycle + collaborator cancel() calls (no orchestration logic)
        self._cancellation = CancellationManager(session_id=context.session_id)

    @property
    def state(self) -> OrchestratorState:
        """
        Return the current immutable orchestrator state.

        State is only replaced internally by Runtime via the reducer.
        Consumers must never modify this state directly.
        """
        return self._state

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the orchestration pipeline.

        Processing steps:
        1. Pass the current state and event to the pure reducer
        2. Atomically swap in the new orchestrator state
        3. Notify the transition observer
        4. Execute all emitted commands in reducer order

        This method is the *only* entry point for events affecting
        orchestrator state. Steps 1-4 contain no suspension point, so
        the event loop serializes every call.
        """
        if self._closed:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "EVENT_AFTER_SHUTDOWN",
                "session_id": self._ctx.session_id,
                "dropped_event_type": event.event_type.value,
            })
            return

        prev_state = self._state
        new_state, commands = reduce(prev_state, event)
        self._state = new_state

        if self._on_transition is not None and new_state is not prev_state:
            self._on_transition(prev_state, new_state)

        for cmd in commands:
            self._execute_command(cmd)

    async def settle(self) -> None:
        """
        Wait until no collaborator call or cancel request is in flight.

        Timers are not awaited; they only fire when their stage hangs.
        """
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                break
            await asyncio.gather(*pending, return_exceptions=True)
        await self._cancellation.drain()

    async def shutdown(self) -> None:
        """
        Clean shutdown of runtime.

        A busy phase is reset first so its collaborator receives
        cancel() (closing the microphone stream, stopping a model run).
        In-flight calls then get one ACK window to return before their
        tasks are cancelled. Events arriving afterwards are dropped.
        """
        if not self._closed and is_busy(self._state.phase):
            await self.handle_event(Reset(event_type=EventType.RESET, ts_ms=_now_ms()))

        self._closed = True

        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        pending = [t for t in self._tasks if not t.done()]
        if pending:
            await asyncio.wait(pending, timeout=CANCEL_ACK_TIMEOUT_MS / 1000.0)
        await self._cancellation.drain()

        self._cancellation.clear_all()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            })

        # ------------------------------------------------------------
        # Capture
        # ------------------------------------------------------------

        elif isinstance(cmd, BeginCapture):
            token = self._cancellation.issue(service=Service.CAPTURE, run_id=cmd.run_id)
            self._spawn(self._run_begin_capture(cmd.run_id, token))

        elif isinstance(cmd, EndCapture):
            self._spawn(self._run_end_capture(cmd.run_id, cmd.handle))

        elif isinstance(cmd, CancelCapture):
            self._cancellation.request_cancel(service=Service.CAPTURE, run_id=cmd.run_id)
            if cmd.handle is not None:
                handle = cmd.handle
                device = self._ctx.capture_device
                self._cancellation.forward_cancel(
                    service=Service.CAPTURE,
                    run_id=cmd.run_id,
                    cancel_fn=lambda: device.cancel(handle),
                )
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "capture_cancel_executed",
                "session_id": self._ctx.session_id,
                "capture_run_id": cmd.run_id,
                "handle_id": cmd.handle.handle_id if cmd.handle is not None else None,
            })

        # ------------------------------------------------------------
        # Transcription
        # ------------------------------------------------------------

        elif isinstance(cmd, StartTranscription):
            token = self._cancellation.issue(
                service=Service.TRANSCRIPTION, run_id=cmd.run_id
            )
            self._spawn(self._run_transcription(cmd.run_id, cmd.artifact, token))

        elif isinstance(cmd, CancelTranscription):
            service = self._ctx.transcription_service
            self._cancel_token_run(
                Service.TRANSCRIPTION,
                cmd.run_id,
                lambda token: service.cancel(token),
            )

        # ------------------------------------------------------------
        # Enhancement
        # ------------------------------------------------------------

        elif isinstance(cmd, StartEnhancement):
            token = self._cancellation.issue(
                service=Service.ENHANCEMENT, run_id=cmd.run_id
            )
            self._spawn(self._run_enhancement(cmd.run_id, cmd.text, token))

        elif isinstance(cmd, CancelEnhancement):
            service = self._ctx.enhancement_service
            self._cancel_token_run(
                Service.ENHANCEMENT,
                cmd.run_id,
                lambda token: service.cancel(token),
            )

        # ------------------------------------------------------------
        # Delivery
        # ------------------------------------------------------------

        elif isinstance(cmd, Notify):
            try:
                self._ctx.notification_sink.notify(cmd.failure)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "NOTIFICATION_SINK_ERROR",
                    "session_id": self._ctx.session_id,
                    "failure": cmd.failure.value,
                    "error": _reason_from(exc),
                })

        elif isinstance(cmd, CopyToClipboard):
            self._copy_to_clipboard(cmd.text)

        # ------------------------------------------------------------
        # Timers
        # ------------------------------------------------------------

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                service=cmd.service,
                run_id=cmd.run_id,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        else:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "COMMAND_NOT_IMPLEMENTED",
                "session_id": self._ctx.session_id,
                "command_type": type(cmd).__name__,
            })

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_token_run(
        self,
        service: Service,
        run_id: int,
        cancel_fn: Callable[[CancellationToken], Awaitable[None]],
    ) -> None:
        token = self._cancellation.lookup(service=service, run_id=run_id)
        invalidated = token is not None and self._cancellation.request_cancel(
            service=service,
            run_id=run_id,
            cancel_fn=lambda: cancel_fn(token),
        )
        log_event({
            "ts_ms": _now_ms(),
            "event_type": f"{service.value.lower()}_cancel_executed",
            "session_id": self._ctx.session_id,
            "run_id": run_id,
            "token_invalidated": invalidated,
        })

    def _copy_to_clipboard(self, text: str) -> None:
        clipboard = self._ctx.clipboard
        if clipboard is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIPBOARD_UNAVAILABLE",
                "session_id": self._ctx.session_id,
            })
            return
        try:
            clipboard.copy(text)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIPBOARD_ERROR",
                "session_id": self._ctx.session_id,
                "error": _reason_from(exc),
            })
            return
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "clipboard_copy_executed",
            "session_id": self._ctx.session_id,
            "text_len": len(text),
        })

    # ------------------------------------------------------------------
    # Collaborator tasks
    # ------------------------------------------------------------------

    async def _run_begin_capture(self, run_id: int, token: CancellationToken) -> None:
        """
        Request a capture handle.

        A handle that arrives after the run was superseded is still
        reported; the reducer answers with CancelCapture to release it.
        """
        try:
            handle = await self._ctx.capture_device.begin()
        except asyncio.CancelledError:
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._cancellation.release(service=Service.CAPTURE, run_id=run_id)
            await self.handle_event(
                CaptureFailed(
                    event_type=EventType.CAPTURE_FAILED,
                    ts_ms=_now_ms(),
                    service=Service.CAPTURE,
                    run_id=run_id,
                    failure=_failure_from(exc, Service.CAPTURE),
                    reason=_reason_from(exc),
                )
            )
            return

        if self._closed:
            # No reducer left to answer with CancelCapture
            device = self._ctx.capture_device
            self._cancellation.forward_cancel(
                service=Service.CAPTURE,
                run_id=run_id,
                cancel_fn=lambda: device.cancel(handle),
            )
            return

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "capture_begin_executed",
            "session_id": self._ctx.session_id,
            "capture_run_id": run_id,
            "handle_id": handle.handle_id,
            "token_cancelled": token.cancelled,
        })
        await self.handle_event(
            CaptureStarted(
                event_type=EventType.CAPTURE_STARTED,
                ts_ms=_now_ms(),
                service=Service.CAPTURE,
                run_id=run_id,
                handle=handle,
            )
        )

    async def _run_end_capture(self, run_id: int, handle: CaptureHandle) -> None:
        try:
            artifact = await self._ctx.capture_device.end(handle)
        except asyncio.CancelledError:
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._cancellation.release(service=Service.CAPTURE, run_id=run_id)
            await self.handle_event(
                CaptureFailed(
                    event_type=EventType.CAPTURE_FAILED,
                    ts_ms=_now_ms(),
                    service=Service.CAPTURE,
                    run_id=run_id,
                    failure=_failure_from(exc, Service.CAPTURE),
                    reason=_reason_from(exc),
                )
            )
            return

        self._cancellation.release(service=Service.CAPTURE, run_id=run_id)

        if artifact is None:
            await self.handle_event(
                CaptureFailed(
                    event_type=EventType.CAPTURE_FAILED,
                    ts_ms=_now_ms(),
                    service=Service.CAPTURE,
                    run_id=run_id,
                    failure=FailureKind.CAPTURE_NO_AUDIO,
                    reason="device_returned_no_artifact",
                )
            )
            return

        await self.handle_event(
            CaptureEnded(
                event_type=EventType.CAPTURE_ENDED,
                ts_ms=_now_ms(),
                service=Service.CAPTURE,
                run_id=run_id,
                artifact=artifact,
            )
        )

    async def _run_transcription(
        self,
        run_id: int,
        artifact: AudioArtifact,
        token: CancellationToken,
    ) -> None:
        try:
            with timed(
                "transcription_latency",
                session_id=self._ctx.session_id,
                details={"run_id": run_id, "artifact_bytes": artifact.size_bytes},
            ):
                text = await self._ctx.transcription_service.transcribe(artifact, token)
        except asyncio.CancelledError:
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._cancellation.release(service=Service.TRANSCRIPTION, run_id=run_id)
            await self.handle_event(
                TranscriptionFailed(
                    event_type=EventType.TRANSCRIPTION_FAILED,
                    ts_ms=_now_ms(),
                    service=Service.TRANSCRIPTION,
                    run_id=run_id,
                    failure=_failure_from(exc, Service.TRANSCRIPTION),
                    reason=_reason_from(exc),
                )
            )
            return

        self._cancellation.release(service=Service.TRANSCRIPTION, run_id=run_id)
        await self.handle_event(
            TranscriptionSucceeded(
                event_type=EventType.TRANSCRIPTION_SUCCEEDED,
                ts_ms=_now_ms(),
                service=Service.TRANSCRIPTION,
                run_id=run_id,
                text=text,
            )
        )

    async def _run_enhancement(
        self,
        run_id: int,
        text: str,
        token: CancellationToken,
    ) -> None:
        try:
            with timed(
                "enhancement_latency",
                session_id=self._ctx.session_id,
                details={"run_id": run_id, "text_len": len(text)},
            ):
                enhanced = await self._ctx.enhancement_service.enhance(text, token)
        except asyncio.CancelledError:
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._cancellation.release(service=Service.ENHANCEMENT, run_id=run_id)
            await self.handle_event(
                EnhancementFailed(
                    event_type=EventType.ENHANCEMENT_FAILED,
                    ts_ms=_now_ms(),
                    service=Service.ENHANCEMENT,
                    run_id=run_id,
                    failure=_failure_from(exc, Service.ENHANCEMENT),
                    reason=_reason_from(exc),
                )
            )
            return

        self._cancellation.release(service=Service.ENHANCEMENT, run_id=run_id)
        await self.handle_event(
            EnhancementSucceeded(
                event_type=EventType.ENHANCEMENT_SUCCEEDED,
                ts_ms=_now_ms(),
                service=Service.ENHANCEMENT,
                run_id=run_id,
                text=enhanced,
            )
        )

    # ------------------------------------------------------------------
    # Timer management
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        service: Service,
        run_id: int,
    ) -> None:
        """
        Start or replace a stage timer.

        Timer tasks re-enter handle_event() when they expire,
        maintaining the single event entry point invariant.
        """
        # Cancel existing timer if present (idempotent)
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
            except asyncio.CancelledError:
                # Timer was cancelled - this is normal
                return

            # Forget ourselves first so the resulting CancelTimer is a no-op
            if self._timers.get(timer_id) is asyncio.current_task():
                self._timers.pop(timer_id, None)

            await self.handle_event(
                StageTimeout(
                    event_type=EventType.STAGE_TIMEOUT,
                    ts_ms=_now_ms(),
                    service=service,
                    run_id=run_id,
                )
            )

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """
        Cancel an in-flight timer if it exists.

        Idempotent: safe to call even if timer doesn't exist.
        """
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done():
            task.cancel()

"""
Cancellation protocol runtime.

Responsibilities:
- Issue one CancellationToken per (service, run_id)
- Invalidate a token exactly once (completion or supersession)
- Forward cancel requests to the collaborator's own cancel()
- Bound each collaborator cancel() by an ACK timeout

Non-responsibilities:
- NO state machine decisions
- NO run_id generation
- NO Start* commands
- NO knowledge of reducer transitions

This module is infrastructure only.
"""

from __future__ import annotations

import asyncio
from asyncio import Task
from dataclasses import dataclass
from typing import Awaitable, Callable

from constants import CANCEL_ACK_TIMEOUT_MS
from observability.logger import log_event
from orchestrator.enums.service import Service


# ---------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------

class CancellationToken:
    """
    Opaque identity of one collaborator call.

    Cancellation is cooperative: collaborators may poll `cancelled`
    or await `wait_cancelled()`, but the orchestrator never relies on
    them doing so. Stale results are dropped by run_id regardless.
    """

    def __init__(self, *, service: Service, run_id: int) -> None:
        self.service = service
        self.run_id = run_id
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> bool:
        """Mark the token cancelled. Returns False if it already was."""
        if self._cancelled.is_set():
            return False
        self._cancelled.set()
        return True

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "live"
        return f"CancellationToken({self.service.value}:{self.run_id}, {state})"


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------

CollaboratorCancelFn = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class _TokenKey:
    service: Service
    run_id: int


# ---------------------------------------------------------------------
# Cancellation Manager
# ---------------------------------------------------------------------

class CancellationManager:
    """
    Runtime manager for token lifecycle and cancel requests.

    Lifecycle:
    1. Runtime starts a collaborator call -> issue(service, run_id)
    2a. Call completes -> release(service, run_id)
    2b. Reducer emits Cancel* -> request_cancel(service, run_id, cancel_fn)
    3. cancel_fn runs under CANCEL_ACK_TIMEOUT_MS; expiry is logged only

    This class never decides what happens next.
    """

    def __init__(self, *, session_id: str) -> None:
        self._session_id = session_id
        self._tokens: dict[_TokenKey, CancellationToken] = {}
        self._cancel_tasks: set[Task[None]] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def issue(self, *, service: Service, run_id: int) -> CancellationToken:
        """
        Create the token for a new run.

        Idempotent: a second issue for the same key returns the live token.
        """
        key = _TokenKey(service, run_id)
        token = self._tokens.get(key)
        if token is None:
            token = CancellationToken(service=service, run_id=run_id)
            self._tokens[key] = token
        return token

    def release(self, *, service: Service, run_id: int) -> None:
        """Forget a completed run's token. Safe if already cancelled."""
        self._tokens.pop(_TokenKey(service, run_id), None)

    def lookup(self, *, service: Service, run_id: int) -> CancellationToken | None:
        return self._tokens.get(_TokenKey(service, run_id))

    def is_live(self, *, service: Service, run_id: int) -> bool:
        token = self.lookup(service=service, run_id=run_id)
        return token is not None and not token.cancelled

    def request_cancel(
        self,
        *,
        service: Service,
        run_id: int,
        cancel_fn: CollaboratorCancelFn | None = None,
    ) -> bool:
        """
        Invalidate the run's token and ask the collaborator to stop.

        Returns True if this call invalidated the token; duplicate or
        unknown requests return False and never reach the collaborator.
        """
        token = self._tokens.pop(_TokenKey(service, run_id), None)
        if token is None or not token.cancel():
            return False

        if cancel_fn is not None:
            self.forward_cancel(service=service, run_id=run_id, cancel_fn=cancel_fn)
        return True

    def forward_cancel(
        self,
        *,
        service: Service,
        run_id: int,
        cancel_fn: CollaboratorCancelFn,
    ) -> None:
        """
        Run a collaborator cancel() in the background, bounded by the
        ACK timeout, without touching token bookkeeping.

        Used to release resources of runs whose token is already gone
        (e.g. a capture handle that arrived after supersession).
        """
        task = asyncio.create_task(
            self._cancel_with_timeout(service=service, run_id=run_id, cancel_fn=cancel_fn)
        )
        self._cancel_tasks.add(task)
        task.add_done_callback(self._cancel_tasks.discard)

    def clear_all(self) -> None:
        """
        Invalidate every outstanding token and abandon pending cancels.
        Used on session teardown.
        """
        for token in self._tokens.values():
            token.cancel()
        self._tokens.clear()

        for task in self._cancel_tasks:
            task.cancel()
        self._cancel_tasks.clear()

    async def drain(self) -> None:
        """Wait for in-flight collaborator cancel() calls to finish."""
        if self._cancel_tasks:
            await asyncio.gather(*list(self._cancel_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _cancel_with_timeout(
        self,
        *,
        service: Service,
        run_id: int,
        cancel_fn: CollaboratorCancelFn,
    ) -> None:
        try:
            await asyncio.wait_for(cancel_fn(), timeout=CANCEL_ACK_TIMEOUT_MS / 1000.0)
        except asyncio.TimeoutError:
            log_event({
                "event_type": "CANCEL_ACK_TIMEOUT",
                "session_id": self._session_id,
                "service": service.value,
                "run_id": run_id,
                "timeout_ms": CANCEL_ACK_TIMEOUT_MS,
            })
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "CANCEL_FAILED",
                "session_id": self._session_id,
                "service": service.value,
                "run_id": run_id,
                "error": f"{type(exc).__name__}: {exc}",
            })

# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json

import pytest

from orchestrator import cancellation
from orchestrator.cancellation import CancellationManager, CancellationToken
from orchestrator.enums.service import Service


def test_issue_is_idempotent_per_run():
    async def scenario() -> None:
        mgr = CancellationManager(session_id="s")
        first = mgr.issue(service=Service.TRANSCRIPTION, run_id=1)
        again = mgr.issue(service=Service.TRANSCRIPTION, run_id=1)
        other = mgr.issue(service=Service.TRANSCRIPTION, run_id=2)

        assert first is again
        assert first is not other
        assert mgr.is_live(service=Service.TRANSCRIPTION, run_id=1)

    asyncio.run(scenario())


def test_request_cancel_invalidates_exactly_once():
    async def scenario() -> None:
        mgr = CancellationManager(session_id="s")
        token = mgr.issue(service=Service.ENHANCEMENT, run_id=1)
        calls: list[int] = []

        async def cancel_fn() -> None:
            calls.append(1)

        assert mgr.request_cancel(service=Service.ENHANCEMENT, run_id=1, cancel_fn=cancel_fn) is True
        assert mgr.request_cancel(service=Service.ENHANCEMENT, run_id=1, cancel_fn=cancel_fn) is False
        await mgr.drain()

        assert token.cancelled
        assert calls == [1]
        assert not mgr.is_live(service=Service.ENHANCEMENT, run_id=1)

    asyncio.run(scenario())


def test_released_run_is_never_forwarded():
    async def scenario() -> None:
        mgr = CancellationManager(session_id="s")
        token = mgr.issue(service=Service.TRANSCRIPTION, run_id=1)
        mgr.release(service=Service.TRANSCRIPTION, run_id=1)

        async def cancel_fn() -> None:
            raise AssertionError("must not be called")

        assert mgr.request_cancel(service=Service.TRANSCRIPTION, run_id=1, cancel_fn=cancel_fn) is False
        await mgr.drain()
        assert not token.cancelled

    asyncio.run(scenario())


def test_token_wait_cancelled_wakes_waiters():
    async def scenario() -> None:
        token = CancellationToken(service=Service.CAPTURE, run_id=1)
        waiter = asyncio.create_task(token.wait_cancelled())
        await asyncio.sleep(0)
        assert not waiter.done()

        assert token.cancel() is True
        assert token.cancel() is False
        await asyncio.wait_for(waiter, timeout=1.0)
        assert "cancelled" in repr(token)

    asyncio.run(scenario())


def test_slow_collaborator_cancel_is_logged(
    monkeypatch: pytest.MonkeyPatch,
    captured_logs: list[str],
):
    monkeypatch.setattr(cancellation, "CANCEL_ACK_TIMEOUT_MS", 10)

    async def scenario() -> None:
        mgr = CancellationManager(session_id="s")
        mgr.issue(service=Service.ENHANCEMENT, run_id=7)

        async def never_acks() -> None:
            await asyncio.sleep(10)

        mgr.request_cancel(service=Service.ENHANCEMENT, run_id=7, cancel_fn=never_acks)
        await mgr.drain()

    asyncio.run(scenario())

    events = [json.loads(line) for line in captured_logs]
    timeouts = [e for e in events if e["event_type"] == "CANCEL_ACK_TIMEOUT"]
    assert timeouts == [{
        "event_type": "CANCEL_ACK_TIMEOUT",
        "session_id": "s",
        "service": "ENHANCEMENT",
        "run_id": 7,
        "timeout_ms": 10,
    }]


def test_failing_collaborator_cancel_is_logged(captured_logs: list[str]):
    async def scenario() -> None:
        mgr = CancellationManager(session_id="s")

        async def broken() -> None:
            raise RuntimeError("device gone")

        mgr.forward_cancel(service=Service.CAPTURE, run_id=1, cancel_fn=broken)
        await mgr.drain()

    asyncio.run(scenario())

    events = [json.loads(line) for line in captured_logs]
    assert [e["error"] for e in events if e["event_type"] == "CANCEL_FAILED"] == [
        "RuntimeError: device gone"
    ]


def test_clear_all_invalidates_everything():
    async def scenario() -> None:
        mgr = CancellationManager(session_id="s")
        tokens = [
            mgr.issue(service=Service.CAPTURE, run_id=1),
            mgr.issue(service=Service.TRANSCRIPTION, run_id=1),
        ]
        mgr.clear_all()
        assert all(t.cancelled for t in tokens)
        assert mgr.lookup(service=Service.CAPTURE, run_id=1) is None

    asyncio.run(scenario())

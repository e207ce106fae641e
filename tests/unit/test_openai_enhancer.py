# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from types import SimpleNamespace
from typing import Any, AsyncIterator

import pytest

from adapters.enhancement.openai_enhancer import OpenAIEnhancementService
from adapters.enhancement.prompts import build_messages, system_prompt
from adapters.errors import EnhancementError
from orchestrator.cancellation import CancellationToken
from orchestrator.enums.failure import FailureKind
from orchestrator.enums.service import Service


def _chunk(content: str | None) -> Any:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeCompletions:
    def __init__(self, deltas: list[str | None], error: Exception | None = None) -> None:
        self.deltas = deltas
        self.error = error
        self.requests: list[dict[str, Any]] = []
        self.block = False

    async def create(self, **kwargs: Any) -> AsyncIterator[Any]:
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self._stream()

    async def _stream(self) -> AsyncIterator[Any]:
        for delta in self.deltas:
            if self.block:
                await asyncio.sleep(10)
            yield _chunk(delta)


def _client(completions: FakeCompletions) -> Any:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _token(run_id: int = 1) -> CancellationToken:
    return CancellationToken(service=Service.ENHANCEMENT, run_id=run_id)


def test_stream_deltas_are_joined_and_stripped() -> None:
    completions = FakeCompletions(["  Hello", None, ", world.", " "])
    service = OpenAIEnhancementService(client=_client(completions), model="test-model")

    text = asyncio.run(service.enhance("hello world", _token()))

    assert text == "Hello, world."
    request = completions.requests[0]
    assert request["model"] == "test-model"
    assert request["stream"] is True
    assert request["messages"] == build_messages("hello world")


def test_vendor_error_becomes_enhancement_error() -> None:
    completions = FakeCompletions([], error=ConnectionError("network down"))
    service = OpenAIEnhancementService(client=_client(completions), model="m")

    with pytest.raises(EnhancementError) as info:
        asyncio.run(service.enhance("text", _token()))

    assert info.value.kind is FailureKind.ENHANCEMENT_FAILED
    assert "network down" in str(info.value)


def test_cancel_stops_in_flight_stream() -> None:
    completions = FakeCompletions(["never"])
    completions.block = True
    service = OpenAIEnhancementService(client=_client(completions), model="m")
    token = _token()

    async def scenario() -> None:
        run = asyncio.create_task(service.enhance("text", token))
        await asyncio.sleep(0.01)
        await service.cancel(token)
        with pytest.raises(asyncio.CancelledError):
            await run

    asyncio.run(scenario())


def test_cancel_unknown_run_is_silent() -> None:
    service = OpenAIEnhancementService(client=_client(FakeCompletions([])), model="m")

    asyncio.run(service.cancel(_token(42)))


def test_messages_use_versioned_system_prompt() -> None:
    messages = build_messages("um hi")

    assert messages[0] == {"role": "system", "content": system_prompt("v1")}
    assert messages[1] == {"role": "user", "content": "um hi"}
    with pytest.raises(KeyError):
        system_prompt("v0")

"""OpenAI enhancement service"""
from __future__ import annotations

import asyncio
from typing import Any

from adapters.enhancement.base import EnhancementService
from adapters.enhancement.prompts import build_messages
from adapters.errors import EnhancementError
from constants import ENHANCEMENT_PROMPT_VERSION, ENHANCEMENT_TEMPERATURE
from observability.logger import log_event
from orchestrator.cancellation import CancellationToken


class OpenAIEnhancementService(EnhancementService):
    """
    Streaming chat-completion enhancer.

    Design notes:
    - One instance may serve multiple sequential runs.
    - Each run is tracked independently via run_id -> asyncio.Task.
    - Responsible ONLY for:
        - Talking to the LLM provider
        - Collecting streamed deltas into the final text
    - Does NOT:
        - Retry
        - Manage timers
        - Decide orchestration outcomes
    """

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        prompt_version: str = ENHANCEMENT_PROMPT_VERSION,
        temperature: float = ENHANCEMENT_TEMPERATURE,
    ) -> None:
        """
        Args:
            client:
                Vendor client (openai.AsyncOpenAI or compatible).
            model:
                Model identifier string.
        """
        self._client = client
        self._model = model
        self._prompt_version = prompt_version
        self._temperature = temperature

        # One task per active run_id
        self._active_tasks: dict[int, asyncio.Task[str]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enhance(self, text: str, token: CancellationToken) -> str:
        if token.run_id in self._active_tasks:
            raise EnhancementError(f"run {token.run_id} already in flight")

        task = asyncio.create_task(self._run_stream(text))
        self._active_tasks[token.run_id] = task
        try:
            return await task
        finally:
            self._active_tasks.pop(token.run_id, None)

    async def cancel(self, token: CancellationToken) -> None:
        """
        Best-effort cancellation.

        Semantics:
        - Idempotent.
        - Silent if run_id is stale or already completed.
        """
        task = self._active_tasks.get(token.run_id)
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except EnhancementError:
            pass

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run_stream(self, text: str) -> str:
        parts: list[str] = []
        try:
            stream = await self._client.chat.completions.create(
                model=self._model,
                messages=build_messages(text, version=self._prompt_version),
                temperature=self._temperature,
                stream=True,
            )
            async for chunk in stream:
                delta = self._extract_delta(chunk)
                if delta:
                    parts.append(delta)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise EnhancementError(f"{type(exc).__name__}: {exc}") from exc

        enhanced = "".join(parts).strip()
        log_event({
            "event_type": "enhancement_stream_complete",
            "model": self._model,
            "prompt_version": self._prompt_version,
            "input_len": len(text),
            "output_len": len(enhanced),
        })
        return enhanced

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_delta(chunk: Any) -> str:
        """
        Extract token delta from vendor response (OpenAI format).
        """
        try:
            delta = chunk.choices[0].delta
            return delta.content or ""
        except (AttributeError, IndexError):
            return ""

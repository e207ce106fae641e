"""
Enhancement service contract (v1).

Purpose:
- Define the interface for rewriting dictated text with an LLM.
- Keep all orchestration, retries, timing, and stale-result gating
  OUT of the service.

Rules:
- This file contains NO logic.
- No retries.
- No knowledge of capture, UI, or state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from orchestrator.cancellation import CancellationToken


class EnhancementService(ABC):
    """
    Abstract base class for enhancement services.

    The service is a *dumb pipe*:
    text -> vendor -> rewritten text.

    Orchestrator responsibilities (NOT here):
    - When to start
    - When to cancel
    - Timeouts
    - What to do with the result
    """

    @abstractmethod
    async def enhance(self, text: str, token: CancellationToken) -> str:
        """
        Rewrite text.

        Contract:
        - Returns the full rewritten text.
        - Raises EnhancementError on network / service failure.
        - Must NOT retry internally.
        """
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, token: CancellationToken) -> None:
        """
        Request cancellation of an in-flight enhancement.

        Contract:
        - Best-effort, idempotent.
        - Must NOT raise if the call is unknown or already completed.
        """
        raise NotImplementedError

"""
Transcription service contract.

This module defines the *interface only* - no buffering, retries,
timers, or orchestration decisions live here.

Key invariants:
- Run ids are owned by the orchestrator; the service only sees the
  CancellationToken of the call.
- transcribe() returns text or raises TranscriptionError. It never
  emits events and never touches session state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from audio.artifact import AudioArtifact
from orchestrator.cancellation import CancellationToken


class TranscriptionService(ABC):
    """
    Abstract interface for a batch transcription service.

    Implementations are responsible for:
    - Converting one completed AudioArtifact into text
    - Stopping work promptly when the token is cancelled

    Non-responsibilities:
    - No decision about which result is current (run_id gating)
    - No retries
    """

    @abstractmethod
    async def transcribe(self, artifact: AudioArtifact, token: CancellationToken) -> str:
        """
        Transcribe an artifact.

        Raises:
            TranscriptionError: unavailable, failed, no speech, too short.
        """
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, token: CancellationToken) -> None:
        """
        Request cancellation of the call identified by token.

        Contract:
        - Best-effort, idempotent.
        - Must NOT raise if the call is unknown or already complete.
        """
        raise NotImplementedError

"""
Audio capture device contract.

This module defines the *interface only*.

Key invariants:
- A handle identifies exactly one open capture.
- The device never sees run ids and never touches session state.
- Failures are raised as CaptureError carrying a FailureKind; the
  runtime converts them into events.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from audio.artifact import AudioArtifact, CaptureHandle


class AudioCaptureDevice(ABC):
    """
    Abstract microphone capture device.

    Implementations are responsible for:
    - Opening an input stream on begin()
    - Returning the recorded audio on end()
    - Discarding audio on cancel()

    Non-responsibilities:
    - No transcription
    - No decision about what happens after capture
    """

    @abstractmethod
    async def begin(self) -> CaptureHandle:
        """
        Open a new capture.

        Raises:
            CaptureError: permission denied, setup or start failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def end(self, handle: CaptureHandle) -> AudioArtifact | None:
        """
        Stop the capture and return its audio.

        Returns None when nothing was recorded.
        """
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, handle: CaptureHandle) -> None:
        """
        Stop the capture and discard its audio.

        Contract:
        - MUST be idempotent.
        - MUST be silent for unknown or already-ended handles.
        """
        raise NotImplementedError

"""
Runtime execution context.

Provides Runtime with access to the collaborators it drives while
executing commands.

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from orchestrator.enums.failure import FailureKind

if TYPE_CHECKING:
    from audio.artifact import AudioArtifact, CaptureHandle
    from orchestrator.cancellation import CancellationToken


# ---------------------------------------------------------------------
# Collaborator Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class AudioCaptureDeviceProtocol(Protocol):
    async def begin(self) -> CaptureHandle: ...
    async def end(self, handle: CaptureHandle) -> AudioArtifact | None: ...
    async def cancel(self, handle: CaptureHandle) -> None:
        """
        Stop the capture and discard its audio.
        Must be idempotent and silent for unknown handles.
        """


@runtime_checkable
class TranscriptionServiceProtocol(Protocol):
    async def transcribe(
        self,
        artifact: AudioArtifact,
        token: CancellationToken,
    ) -> str: ...
    async def cancel(self, token: CancellationToken) -> None: ...


@runtime_checkable
class EnhancementServiceProtocol(Protocol):
    async def enhance(self, text: str, token: CancellationToken) -> str: ...
    async def cancel(self, token: CancellationToken) -> None: ...


@runtime_checkable
class NotificationSinkProtocol(Protocol):
    def notify(self, failure: FailureKind) -> None:
        """Fire-and-forget; the orchestrator consumes no result."""


@runtime_checkable
class ClipboardSinkProtocol(Protocol):
    def copy(self, text: str) -> None: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

@dataclass
class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    Runtime is allowed to:
    - Call collaborators
    - Read session metadata

    Runtime is NOT allowed to:
    - Let collaborators write phase state
    - Perform orchestration decisions
    """

    session_id: str
    capture_device: AudioCaptureDeviceProtocol
    transcription_service: TranscriptionServiceProtocol
    enhancement_service: EnhancementServiceProtocol
    notification_sink: NotificationSinkProtocol
    clipboard: ClipboardSinkProtocol | None = None

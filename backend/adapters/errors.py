"""
Collaborator error types.

Collaborators raise these to classify a failure. The runtime catches them
at the collaborator boundary and converts them into failure events; they
never reach the UI.

Any other exception escaping a collaborator is reported with the service's
default FailureKind.
"""

from __future__ import annotations

from orchestrator.enums.failure import FailureCategory, FailureKind


class CollaboratorError(Exception):
    """Base class for classified collaborator failures."""

    category: FailureCategory
    default_kind: FailureKind

    def __init__(self, message: str = "", *, kind: FailureKind | None = None) -> None:
        super().__init__(message)
        resolved = kind if kind is not None else self.default_kind
        if resolved.category is not self.category:
            raise ValueError(
                f"{type(self).__name__} cannot carry {resolved.value}"
            )
        self.kind = resolved


class CaptureError(CollaboratorError):
    """Permission denied, device setup failed, or device start failed."""

    category = FailureCategory.CAPTURE_ERROR
    default_kind = FailureKind.CAPTURE_START_FAILED


class TranscriptionError(CollaboratorError):
    """Transcription service unavailable or processing failed."""

    category = FailureCategory.TRANSCRIPTION_ERROR
    default_kind = FailureKind.TRANSCRIPTION_FAILED


class EnhancementError(CollaboratorError):
    """Network or service failure during enhancement."""

    category = FailureCategory.ENHANCEMENT_ERROR
    default_kind = FailureKind.ENHANCEMENT_FAILED

"""
Audio artifact primitives.

Pure data containers only.
The orchestrator never interprets an artifact beyond pass-through;
collaborators produce and consume it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from constants import (
    CAPTURE_CHANNELS,
    CAPTURE_SAMPLE_RATE_HZ,
    pcm_bytes_to_seconds,
)


@dataclass(frozen=True)
class CaptureHandle:
    """
    Opaque identity of one open capture on an AudioCaptureDevice.

    handle_id:
        Device-assigned identifier. Unique per device instance.

    started_ts_ms:
        Wall-clock timestamp (milliseconds) when capture began.
        Used for observability only (not control logic).
    """
    handle_id: str
    started_ts_ms: int


@dataclass(frozen=True)
class AudioArtifact:
    """
    One completed recording.

    pcm_bytes:
        Raw PCM16 little-endian audio.

    path:
        Optional on-disk copy (WAV) written by the device.
    """
    pcm_bytes: bytes
    sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ
    channels: int = CAPTURE_CHANNELS
    path: Path | None = None

    @property
    def size_bytes(self) -> int:
        """Return payload size in bytes."""
        return len(self.pcm_bytes)

    @property
    def duration_s(self) -> float:
        """Return payload duration in seconds."""
        return pcm_bytes_to_seconds(
            len(self.pcm_bytes),
            sample_rate_hz=self.sample_rate_hz,
            channels=self.channels,
        )

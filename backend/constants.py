"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for all behavioral invariants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Audio capture format (PCM16 mono @ 16kHz)
# =============================================================================

CAPTURE_SAMPLE_RATE_HZ: Final[int] = 16_000
CAPTURE_CHANNELS: Final[int] = 1
CAPTURE_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)
CAPTURE_BLOCKSIZE: Final[int] = 1024

# Artifacts below this size almost certainly contain no speech
MIN_ARTIFACT_BYTES: Final[int] = 1_000

# On-disk recordings (only when a recordings directory is configured)
RECORDING_FILE_PREFIX: Final[str] = "recording_"
RECORDING_RETENTION_S: Final[int] = 24 * 60 * 60

# =============================================================================
# Stage timeouts
# =============================================================================
# A timeout is resolved exactly like a failure of the same stage.

CAPTURE_TIMEOUT_MS: Final[int] = 5_000
TRANSCRIPTION_TIMEOUT_MS: Final[int] = 60_000
ENHANCEMENT_TIMEOUT_MS: Final[int] = 30_000

# =============================================================================
# Cancellation protocol
# =============================================================================

CANCEL_ACK_TIMEOUT_MS: Final[int] = 500

# =============================================================================
# Transcription output filtering
# =============================================================================

# Whisper emits these for music / noise with no intelligible speech
NON_SPEECH_MARKERS: Final[Tuple[str, ...]] = (
    "[music]",
    "[blank_audio]",
    "[noise]",
)

# =============================================================================
# Enhancement prompt versioning
# =============================================================================

ENHANCEMENT_PROMPT_VERSION: Final[str] = "v1"
ENHANCEMENT_TEMPERATURE: Final[float] = 0.3

# =============================================================================
# Helper Functions
# =============================================================================

def pcm_bytes_to_seconds(
    num_bytes: int,
    *,
    sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ,
    channels: int = CAPTURE_CHANNELS,
) -> float:
    """
    Convert a PCM16 payload size to its duration in seconds.

    Defensive behavior:
    - Non-positive input returns 0.0 instead of propagating an error.
    """
    if num_bytes <= 0 or sample_rate_hz <= 0 or channels <= 0:
        return 0.0
    bytes_per_second = sample_rate_hz * channels * CAPTURE_SAMPLE_WIDTH_BYTES
    return num_bytes / bytes_per_second

"""
PCM16 conversion utilities.

Runtime-safe, adapter-agnostic helpers shared by capture and
transcription. No resampling. No channel mixing.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np


def int16_blocks_to_pcm16le(blocks: Iterable[np.ndarray]) -> bytes:
    """
    Join captured int16 blocks (frames x channels) into one
    little-endian PCM16 payload.
    """
    arrays = [np.asarray(block, dtype="<i2").reshape(-1) for block in blocks]
    if not arrays:
        return b""
    return np.concatenate(arrays).tobytes()


def pcm16le_to_int16(pcm_bytes: bytes) -> np.ndarray:
    """View PCM16 little-endian bytes as int16 samples (odd trailing byte dropped)."""
    if len(pcm_bytes) % 2 != 0:
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]
    return np.frombuffer(pcm_bytes, dtype="<i2")


def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0)."""
    return pcm16le_to_int16(pcm_bytes).astype(np.float32) / 32768.0


def peak_level(pcm_bytes: bytes) -> float:
    """Peak absolute amplitude in [0.0, 1.0]; 0.0 for an empty payload."""
    samples = pcm16le_to_int16(pcm_bytes)
    if samples.size == 0:
        return 0.0
    return float(np.max(np.abs(samples.astype(np.int32)))) / 32768.0

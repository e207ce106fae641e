"""
On-disk recording files.

Recordings are optional WAV copies of captured audio. Old files are
pruned so the directory never grows without bound.
"""

from __future__ import annotations

import time
from pathlib import Path

import soundfile as sf

from audio.pcm import pcm16le_to_int16
from constants import RECORDING_FILE_PREFIX, RECORDING_RETENTION_S


def recording_path(directory: Path, *, handle_id: str, ts_s: float | None = None) -> Path:
    """Build the WAV path for one capture (recording_<unix ts>_<handle>.wav)."""
    stamp = int(time.time() if ts_s is None else ts_s)
    return directory / f"{RECORDING_FILE_PREFIX}{stamp}_{handle_id}.wav"


def write_wav(path: Path, pcm_bytes: bytes, *, sample_rate_hz: int, channels: int) -> Path:
    """Write PCM16 bytes as a 16-bit WAV file and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    samples = pcm16le_to_int16(pcm_bytes)
    if channels > 1:
        samples = samples.reshape(-1, channels)
    sf.write(str(path), samples, sample_rate_hz, subtype="PCM_16")
    return path


def cleanup_old_recordings(
    directory: Path,
    *,
    now_s: float | None = None,
    retention_s: int = RECORDING_RETENTION_S,
) -> list[Path]:
    """
    Delete recordings older than retention_s.

    Only files carrying the recording prefix are touched. Returns the
    removed paths. Files that vanish concurrently are skipped.
    """
    if not directory.is_dir():
        return []

    cutoff = (time.time() if now_s is None else now_s) - retention_s
    removed: list[Path] = []
    for path in sorted(directory.glob(f"{RECORDING_FILE_PREFIX}*")):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed.append(path)
        except FileNotFoundError:
            continue
    return removed

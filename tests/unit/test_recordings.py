# pylint: disable=missing-module-docstring,missing-function-docstring

import os
from pathlib import Path

import numpy as np
import soundfile as sf

from audio.artifact import AudioArtifact
from audio.pcm import (
    int16_blocks_to_pcm16le,
    pcm16le_to_float32,
    pcm16le_to_int16,
    peak_level,
)
from audio.recordings import cleanup_old_recordings, recording_path, write_wav


def test_blocks_are_flattened_in_order() -> None:
    blocks = [np.array([[1], [2]], dtype=np.int16), np.array([[-3]], dtype=np.int16)]

    pcm = int16_blocks_to_pcm16le(blocks)

    assert pcm16le_to_int16(pcm).tolist() == [1, 2, -3]
    assert int16_blocks_to_pcm16le([]) == b""


def test_float_conversion_and_peak() -> None:
    pcm = np.array([0, 16384, -32768], dtype="<i2").tobytes()

    assert pcm16le_to_float32(pcm).tolist() == [0.0, 0.5, -1.0]
    assert peak_level(pcm) == 1.0
    assert peak_level(b"") == 0.0
    assert pcm16le_to_int16(pcm + b"\x01").size == 3


def test_artifact_duration() -> None:
    artifact = AudioArtifact(pcm_bytes=b"\x00" * 32_000)

    assert artifact.size_bytes == 32_000
    assert artifact.duration_s == 1.0


def test_write_wav(tmp_path: Path) -> None:
    samples = np.array([0, 100, -100, 32767], dtype="<i2")
    path = recording_path(tmp_path / "rec", handle_id="cap_1", ts_s=1700000000)

    write_wav(path, samples.tobytes(), sample_rate_hz=16_000, channels=1)

    assert path.name == "recording_1700000000_cap_1.wav"
    data, rate = sf.read(str(path), dtype="int16")
    assert rate == 16_000
    assert data.tolist() == samples.tolist()


def test_cleanup_removes_only_expired_recordings(tmp_path: Path) -> None:
    now = 1_000_000.0
    old = tmp_path / "recording_1_a.wav"
    fresh = tmp_path / "recording_2_b.wav"
    unrelated = tmp_path / "notes.txt"
    for path in (old, fresh, unrelated):
        path.write_bytes(b"x")
    os.utime(old, (now - 90_000, now - 90_000))
    os.utime(fresh, (now - 60, now - 60))
    os.utime(unrelated, (now - 90_000, now - 90_000))

    removed = cleanup_old_recordings(tmp_path, now_s=now)

    assert removed == [old]
    assert not old.exists()
    assert fresh.exists()
    assert unrelated.exists()


def test_cleanup_missing_directory(tmp_path: Path) -> None:
    assert cleanup_old_recordings(tmp_path / "missing") == []

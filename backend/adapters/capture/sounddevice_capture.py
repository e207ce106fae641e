# pyright: reportUnknownMemberType=false
"""
Microphone capture via sounddevice (PortAudio).

PCM16 mono at 16 kHz. Blocks are collected by the PortAudio callback
thread; opening and closing streams happens off the event loop.

sounddevice is imported on first use: loading it requires the PortAudio
shared library, which is only needed once a stream is actually opened.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence
from uuid import uuid4

import numpy as np

from adapters.capture.base import AudioCaptureDevice
from adapters.errors import CaptureError
from audio.artifact import AudioArtifact, CaptureHandle
from audio.pcm import int16_blocks_to_pcm16le, peak_level
from audio.recordings import cleanup_old_recordings, recording_path, write_wav
from constants import CAPTURE_BLOCKSIZE, CAPTURE_CHANNELS, CAPTURE_SAMPLE_RATE_HZ
from observability.logger import log_event
from orchestrator.enums.failure import FailureKind


_PERMISSION_HINTS = ("permission", "not authorized", "access denied")

StreamFactory = Callable[..., Any]
DeviceQuery = Callable[[], Sequence[Any]]


def _default_stream_factory(**kwargs: Any) -> Any:
    import sounddevice as sd  # pylint: disable=import-outside-toplevel

    return sd.InputStream(**kwargs)


def _default_device_query() -> Sequence[Any]:
    import sounddevice as sd  # pylint: disable=import-outside-toplevel

    return sd.query_devices()


@dataclass
class _OpenCapture:
    handle: CaptureHandle
    stream: Any = None  # sd.InputStream
    blocks: list[np.ndarray] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


def find_input_device(name: str, devices: Sequence[Any]) -> int:
    """Resolve an input-capable device index by exact name."""
    for index, device in enumerate(devices):
        if device.get("name") == name and device.get("max_input_channels", 0) > 0:
            return index
    available = [d["name"] for d in devices if d.get("max_input_channels", 0) > 0]
    raise CaptureError(
        f"Input device {name!r} not found. Available input devices: {available}",
        kind=FailureKind.CAPTURE_SETUP_FAILED,
    )


def _classify_port_audio_error(exc: Exception, default: FailureKind) -> FailureKind:
    message = str(exc).lower()
    if any(hint in message for hint in _PERMISSION_HINTS):
        return FailureKind.CAPTURE_PERMISSION_DENIED
    return default


class SoundDeviceCapture(AudioCaptureDevice):
    """
    sounddevice-backed AudioCaptureDevice.

    Usage:
      device = SoundDeviceCapture()
      handle = await device.begin()
      ...
      artifact = await device.end(handle)
    """

    def __init__(
        self,
        *,
        device_name: str | None = None,
        sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ,
        recordings_dir: Path | None = None,
        stream_factory: StreamFactory | None = None,
        device_query: DeviceQuery | None = None,
    ) -> None:
        self._device_name = device_name
        self._sample_rate_hz = sample_rate_hz
        self._recordings_dir = recordings_dir
        self._stream_factory = stream_factory or _default_stream_factory
        self._device_query = device_query or _default_device_query
        self._open: dict[str, _OpenCapture] = {}

    # ---------- Public API ----------

    async def begin(self) -> CaptureHandle:
        return await asyncio.to_thread(self._open_stream)

    async def end(self, handle: CaptureHandle) -> AudioArtifact | None:
        capture = self._open.pop(handle.handle_id, None)
        if capture is None:
            raise CaptureError(
                f"Unknown capture handle {handle.handle_id}",
                kind=FailureKind.CAPTURE_NO_AUDIO,
            )
        return await asyncio.to_thread(self._finish, capture)

    async def cancel(self, handle: CaptureHandle) -> None:
        capture = self._open.pop(handle.handle_id, None)
        if capture is None:
            return
        await asyncio.to_thread(self._close_stream, capture)
        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "capture_discarded",
            "handle_id": handle.handle_id,
        })

    # ---------- Internals (worker thread) ----------

    def _open_stream(self) -> CaptureHandle:
        device = (
            find_input_device(self._device_name, self._device_query())
            if self._device_name
            else None
        )
        handle = CaptureHandle(
            handle_id=f"cap_{uuid4().hex[:12]}",
            started_ts_ms=int(time.time() * 1000),
        )

        capture = _OpenCapture(handle=handle)

        def _callback(indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:  # pylint: disable=unused-argument
            if status:
                log_event({
                    "ts_ms": int(time.time() * 1000),
                    "event_type": "capture_stream_status",
                    "handle_id": handle.handle_id,
                    "status": str(status),
                })
            with capture.lock:
                capture.blocks.append(indata.copy())

        try:
            capture.stream = self._stream_factory(
                device=device,
                channels=CAPTURE_CHANNELS,
                samplerate=self._sample_rate_hz,
                blocksize=CAPTURE_BLOCKSIZE,
                dtype="int16",
                callback=_callback,
            )
        except Exception as exc:
            raise CaptureError(
                f"Failed to set up audio recording: {exc}",
                kind=_classify_port_audio_error(exc, FailureKind.CAPTURE_SETUP_FAILED),
            ) from exc

        try:
            capture.stream.start()
        except Exception as exc:
            capture.stream.close()
            raise CaptureError(
                f"Failed to start recording: {exc}",
                kind=_classify_port_audio_error(exc, FailureKind.CAPTURE_START_FAILED),
            ) from exc

        self._open[handle.handle_id] = capture
        return handle

    def _close_stream(self, capture: _OpenCapture) -> None:
        try:
            capture.stream.stop()
        finally:
            capture.stream.close()

    def _finish(self, capture: _OpenCapture) -> AudioArtifact | None:
        try:
            self._close_stream(capture)
        except Exception as exc:
            raise CaptureError(
                f"Failed to stop recording: {exc}",
                kind=FailureKind.CAPTURE_NO_AUDIO,
            ) from exc

        with capture.lock:
            pcm_bytes = int16_blocks_to_pcm16le(capture.blocks)
            capture.blocks.clear()

        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "capture_finished",
            "handle_id": capture.handle.handle_id,
            "pcm_bytes": len(pcm_bytes),
            "peak_level": round(peak_level(pcm_bytes), 4),
        })

        if not pcm_bytes:
            return None

        path: Path | None = None
        if self._recordings_dir is not None:
            cleanup_old_recordings(self._recordings_dir)
            path = write_wav(
                recording_path(self._recordings_dir, handle_id=capture.handle.handle_id),
                pcm_bytes,
                sample_rate_hz=self._sample_rate_hz,
                channels=CAPTURE_CHANNELS,
            )

        return AudioArtifact(
            pcm_bytes=pcm_bytes,
            sample_rate_hz=self._sample_rate_hz,
            channels=CAPTURE_CHANNELS,
            path=path,
        )

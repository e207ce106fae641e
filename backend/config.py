"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No behavioral constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    CAPTURE_SAMPLE_RATE_HZ,
    CAPTURE_TIMEOUT_MS,
    ENHANCEMENT_TIMEOUT_MS,
    TRANSCRIPTION_TIMEOUT_MS,
)


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup and passed to
    build_orchestrator().
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    capture_device: str | None = None
    capture_sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ
    recordings_dir: str | None = None

    # ------------------------------------------------------------------
    # Transcription (local Whisper)
    # ------------------------------------------------------------------

    whisper_model: str = "base"
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_language: str | None = None

    # ------------------------------------------------------------------
    # Enhancement (LLM)
    # ------------------------------------------------------------------

    openai_api_key: str | None = None
    enhancement_model: str = "gpt-4o-mini"

    # ------------------------------------------------------------------
    # Stage timeouts
    # ------------------------------------------------------------------

    capture_timeout_ms: int = CAPTURE_TIMEOUT_MS
    transcription_timeout_ms: int = TRANSCRIPTION_TIMEOUT_MS
    enhancement_timeout_ms: int = ENHANCEMENT_TIMEOUT_MS

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable is malformed.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),

            capture_device=os.environ.get("CAPTURE_DEVICE") or None,
            capture_sample_rate_hz=_int_env(
                "CAPTURE_SAMPLE_RATE_HZ", CAPTURE_SAMPLE_RATE_HZ
            ),
            recordings_dir=os.environ.get("RECORDINGS_DIR") or None,

            whisper_model=os.environ.get("WHISPER_MODEL", "base"),
            whisper_device=os.environ.get("WHISPER_DEVICE", "cpu"),
            whisper_compute_type=os.environ.get("WHISPER_COMPUTE_TYPE", "int8"),
            whisper_language=os.environ.get("WHISPER_LANGUAGE") or None,

            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            enhancement_model=os.environ.get("ENHANCEMENT_MODEL", "gpt-4o-mini"),

            capture_timeout_ms=_int_env("CAPTURE_TIMEOUT_MS", CAPTURE_TIMEOUT_MS),
            transcription_timeout_ms=_int_env(
                "TRANSCRIPTION_TIMEOUT_MS", TRANSCRIPTION_TIMEOUT_MS
            ),
            enhancement_timeout_ms=_int_env(
                "ENHANCEMENT_TIMEOUT_MS", ENHANCEMENT_TIMEOUT_MS
            ),
        )

"""
Process-wide settings for the call bridge.

Settings are read from the environment exactly once (see ``get_settings``) and
are immutable afterwards; anything that changes during a call lives on the
``CallSession`` instead.
"""

import os
from functools import lru_cache
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from callbridge.config.constants import (
    AUDIO_FORMAT_G711_ULAW,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    DEFAULT_TRANSCRIPTION_MODEL,
    DEFAULT_VOICE,
)

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Immutable configuration for the server and every call session."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    log_level: str = "INFO"

    openai_api_key: str = ""
    openai_realtime_model: str = DEFAULT_REALTIME_MODEL
    openai_realtime_url: str = DEFAULT_REALTIME_URL

    system_prompt: str = ""
    voice: str = DEFAULT_VOICE
    input_audio_format: str = AUDIO_FORMAT_G711_ULAW
    output_audio_format: str = AUDIO_FORMAT_G711_ULAW
    transcription_model: Optional[str] = DEFAULT_TRANSCRIPTION_MODEL

    vad_threshold: float = Field(0.5, ge=0.0, le=1.0)
    vad_prefix_padding_ms: int = Field(300, ge=0)
    vad_silence_duration_ms: int = Field(500, ge=0)

    send_greeting: bool = True
    greeting_instructions: Optional[str] = None

    report_url: Optional[str] = None
    report_secret: Optional[str] = None
    report_timeout: float = Field(10.0, gt=0)

    pending_audio_limit: int = Field(200, ge=1)
    keepalive_interval: float = Field(25.0, gt=0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables (``os.environ`` by default)."""
        env = os.environ if environ is None else environ

        def text(name: str) -> Optional[str]:
            value = env.get(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        def flag(name: str, default: bool) -> bool:
            value = text(name)
            if value is None:
                return default
            return value.lower() in _TRUTHY

        values = {
            "host": text("HOST"),
            "port": text("PORT"),
            "log_level": (text("LOG_LEVEL") or "INFO").upper(),
            "openai_api_key": text("OPENAI_API_KEY") or "",
            "openai_realtime_model": text("OPENAI_REALTIME_MODEL"),
            "openai_realtime_url": text("OPENAI_REALTIME_URL"),
            "system_prompt": env.get("SYSTEM_PROMPT", ""),
            "voice": text("VOICE"),
            "input_audio_format": text("INPUT_AUDIO_FORMAT"),
            "output_audio_format": text("OUTPUT_AUDIO_FORMAT"),
            "vad_threshold": text("VAD_THRESHOLD"),
            "vad_prefix_padding_ms": text("VAD_PREFIX_PADDING_MS"),
            "vad_silence_duration_ms": text("VAD_SILENCE_DURATION_MS"),
            "greeting_instructions": text("GREETING_INSTRUCTIONS"),
            "report_url": text("REPORT_URL"),
            "report_secret": text("REPORT_SECRET"),
            "report_timeout": text("REPORT_TIMEOUT"),
            "pending_audio_limit": text("PENDING_AUDIO_LIMIT"),
            "keepalive_interval": text("KEEPALIVE_INTERVAL"),
        }
        settings = {key: value for key, value in values.items() if value is not None}
        # An explicitly empty TRANSCRIPTION_MODEL turns input transcription off
        if "TRANSCRIPTION_MODEL" in env:
            settings["transcription_model"] = text("TRANSCRIPTION_MODEL")
        settings["debug"] = flag("DEBUG", False)
        settings["send_greeting"] = flag("SEND_GREETING", True)
        return cls(**settings)

    @property
    def report_configured(self) -> bool:
        return bool(self.report_url and self.report_secret)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return Settings.from_env()

"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    storage_backend: Literal["supabase", "memory"] = "memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    storage_table: str = "creation_storage"
    host_mode: Literal["openai", "http", "none"] = "none"
    host_url: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    transcription_timeout_seconds: float = 30.0
    enhance_transcripts: bool = False
    saved_reset_delay_seconds: float = 1.5
    capture_width: int = 240
    capture_height: int = 282
    camera_facing: str = "environment"
    camera_index: int | None = None
    audio_sample_rate: int = 16_000
    audio_channels: int = 1
    local_asr_model: str | None = None
    local_asr_device: str = "cpu"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def camera_indices(facing: str, index: int | None) -> dict[str, int]:
    """Map camera facings to device indices, honouring an explicit override."""
    indices = {"environment": 0, "user": 1}
    if index is not None:
        indices[facing] = index
    return indices

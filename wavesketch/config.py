"""WAVESKETCH global configuration."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine and server settings loaded from environment variables."""

    # Audio device
    sample_rate: int = 44100
    block_size: int = 512
    channels: int = 2
    output_device: str | None = None

    # Tone table
    table_size: int = 1024  # samples per cycle (N)
    n_harmonics: int = 32  # harmonic count (H), DC excluded

    # Voices
    release_s: float = 0.1
    release_mode: Literal["fixed", "envelope"] = "fixed"

    # Effects
    max_delay_s: float = 0.3
    reverb_seconds: float = 2.0
    reverb_seed: int | None = None
    initial_master: float = 0.3  # 0-1

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    env: str = "development"

    model_config = {"env_prefix": "WAVESKETCH_"}


settings = Settings()

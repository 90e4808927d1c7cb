"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Intake bot configuration. All values come from environment variables."""

    # Telegram
    telegram_bot_token: str = Field(default="")

    # Gemini (comma-separated key pool, tried in order)
    gemini_api_keys: str = Field(default="")
    gemini_model: str = Field(default="gemini-2.0-flash")

    # Context store
    database_path: Path = Field(default=Path("data/intake.db"))
    context_retention_seconds: int = Field(default=1800)

    # Buffering
    media_timeout_seconds: float = Field(default=300.0)

    # Video sampling
    default_sample_fps: int = Field(default=3)
    frame_batch_size: int = Field(default=3)
    ffmpeg_binary: str = Field(default="ffmpeg")

    # Media downloads
    download_timeout_seconds: float = Field(default=60.0)

    # Outbound messages
    max_message_length: int = Field(default=4000)

    # Health endpoint
    port: int = Field(default=3000)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_gemini_api_keys(self) -> list[str]:
        """Parse GEMINI_API_KEYS into an ordered list of keys."""
        if not self.gemini_api_keys.strip():
            return []
        return [key.strip() for key in self.gemini_api_keys.split(",") if key.strip()]


settings = Settings()

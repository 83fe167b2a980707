from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PRICESCAN_", env_file=".env", extra="ignore", populate_by_name=True
    )

    APP_NAME: str = Field(default="pricescan")
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")

    # Client side: where the scan pipeline sends recognition requests
    RECOGNITION_BASE_URL: str | None = Field(default="http://localhost:8000")
    RECOGNITION_TIMEOUT_SECONDS: float = Field(default=30.0)
    RECOGNITION_VERIFY_SSL: bool = Field(default=True)

    # Scan pipeline policy
    DISPATCH_SPACING_MS: int = Field(default=1500)
    DEDUP_WINDOW_MS: int = Field(default=3000)
    AUTO_CAPTURE_INTERVAL_MS: int = Field(default=2000)
    MIN_PRICE: int = Field(default=100)
    JPEG_QUALITY: int = Field(default=85)

    # Service side: generative model backing /api/parse
    GEMINI_API_KEY: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "PRICESCAN_GEMINI_API_KEY"),
    )
    GEMINI_MODEL: str = Field(default="gemini-1.5-flash")
    GEMINI_BASE_URL: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    GEMINI_TIMEOUT_SECONDS: float = Field(default=60.0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]

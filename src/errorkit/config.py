from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    Pydantic Settings automatically reads env vars matching field names (case-insensitive).
    In development, it also reads from .env file if present.
    In production, set environment variables directly (Docker, k8s, etc.).
    """

    # Deployment environment. Anything other than "production" discloses
    # devMessage in error responses.
    environment: Literal["development", "production", "test"] = "development"

    # Included in every log line as "service"
    service_name: str = "unknown"

    model_config = SettingsConfigDict(
        env_file=".env",  # Load from .env in development
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()

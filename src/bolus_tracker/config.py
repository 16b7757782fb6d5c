"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str | None = None
    openai_project: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.1
    text_analysis_timeout_seconds: float = 45.0
    image_analysis_timeout_seconds: float = 60.0
    meal_photo_bucket: str = "refeicoes"
    protein_fat_rule: str = "kcal_split_div10"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

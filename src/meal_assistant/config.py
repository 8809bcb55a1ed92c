"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "medium"
    openai_store: bool = False
    chat_max_steps: int = 10
    recent_meals_limit: int = 10
    recent_activities_limit: int = 5
    activity_window_minutes: int = 60
    pr_history_limit: int = 50
    context_turns: int = 5
    pending_ttl_seconds: int = 300
    lookup_id_ttl_seconds: int = 1800
    timezone: str = "UTC"
    calorie_target: float = 2400.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

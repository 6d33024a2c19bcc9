"""
Application settings
Loaded once from environment variables (and an optional .env file)
"""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the SkillSwap backend"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"
    backend_port: int = 8000

    # Supabase (document store + identity provider)
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_key: str = ""

    # Hot-read cache; empty disables it
    redis_url: str = ""

    # Comma separated
    allowed_origins: str = "http://localhost:3000,http://localhost:3001,http://127.0.0.1:3000"

    # Availability
    reference_timezone: str = "Asia/Kolkata"
    working_hours_start: int = 10
    working_hours_end: int = 20
    availability_horizon_days: int = 7

    # Caching
    match_cache_ttl_seconds: int = 3600
    user_cache_ttl_seconds: int = 86400

    # External calendar
    calendar_api_base_url: str = Field(
        default="https://www.googleapis.com/calendar/v3",
        validation_alias="GOOGLE_CALENDAR_API_URL",
    )
    calendar_timeout_seconds: float = 10.0

    # Reputation updates
    rating_max_retries: int = 3

    # Rate limiting (requests per minute)
    rate_limit_auth: int = 30
    rate_limit_profile: int = 60
    rate_limit_match: int = 60

    max_request_size: int = 1024 * 1024

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


settings = Settings()

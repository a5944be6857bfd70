"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file).

    Engine constants (reference timezone, default cycle length, regularity
    breakpoints) live in ``src/tracking/tracking_config.yaml`` instead.
    """

    # --- App ---
    app_name: str = "FitFare"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Postgres ---
    database_url: str  # postgres connection string for asyncpg
    db_pool_min_size: int = 2
    db_pool_max_size: int = 20
    db_command_timeout: float = 30.0

    # --- Clerk ---
    clerk_secret_key: str
    clerk_publishable_key: str
    clerk_webhook_secret: str  # svix signing secret for webhook verification
    clerk_jwks_url: str = "https://api.clerk.com/v1/jwks"

    # --- Rate Limiting ---
    rate_limit_per_minute: int = 60

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]

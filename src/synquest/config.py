"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    port: int = 3001
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: str = "INFO"
    log_format: str = "json"

    # --- Database ---
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "synonym_quest"
    db_user: str = "postgres"
    db_password: str = "postgres"
    database_url: str | None = None
    db_pool_size: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 10
    db_create_tables: bool = True

    # --- JWT ---
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_days: int = 7
    jwt_refresh_token_expire_days: int = 30
    jwt_issuer: str = "synonym-quest"

    # --- Passwords ---
    password_min_length: int = 6
    password_max_length: int = 128

    # --- Rate limits ---
    rate_limit_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60
    auth_rate_limit_attempts: int = 5
    auth_rate_limit_window_seconds: int = 900

    # --- OpenAI ---
    openai_api_key: str = ""
    openai_model: str = "gpt-4"
    openai_timeout_seconds: int = 30

    # --- Seeding ---
    seed_badges_on_startup: bool = True

    @property
    def sqlalchemy_url(self) -> str:
        """Explicit DATABASE_URL wins; otherwise build an asyncpg URL from DB_* parts."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

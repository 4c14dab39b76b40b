"""Configuration management using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database settings
    db_server: str = "localhost"
    db_name: str = "kanban"
    db_user: str = "kanban"
    db_password: str = ""
    db_port: int = 5432
    db_pool_size: int = 20
    db_max_overflow: int = 40
    sql_echo: bool = False

    # Full URL wins over the db_* parts when set (e.g. sqlite+aiosqlite for local runs)
    database_url_override: str = ""

    # JWT settings
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "*"

    # Redis settings (arq job queue for notifications)
    redis_url: str = "redis://localhost:6379/0"
    redis_required: bool = False  # Set True to refuse startup without a queue

    # Notification settings
    notifications_enabled: bool = True

    # ARQ worker settings
    arq_max_jobs: int = 10
    arq_job_timeout: int = 60

    @property
    def database_url(self) -> str:
        """Build PostgreSQL async connection string."""
        if self.database_url_override:
            return self.database_url_override
        from urllib.parse import quote_plus
        return (
            f"postgresql+asyncpg://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )

    @property
    def sync_database_url(self) -> str:
        """Build PostgreSQL sync connection string for Alembic."""
        if self.database_url_override:
            return self.database_url_override.replace("+aiosqlite", "").replace("+asyncpg", "+psycopg2")
        from urllib.parse import quote_plus
        return (
            f"postgresql+psycopg2://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )

    @property
    def cors_origin_list(self) -> list[str]:
        """Split the comma-separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()

"""
Application Settings

Environment-driven configuration for the postmeta benchmark.
Values are read from environment variables (or a local .env file).
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Benchmark settings, one attribute per environment variable."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Postgres content store
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DATABASE: str = "wordpress"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_POOL_MIN_SIZE: int = 1
    POSTGRES_POOL_MAX_SIZE: int = 2
    TABLE_PREFIX: str = "wp_"

    # Which backend `metabench run` talks to by default
    STORE_BACKEND: str = "postgres"

    # Report output
    CONTENT_DIR: str = "./content"
    CONTENT_URL: str = "http://localhost:8000/content"

    # Benchmark behaviour
    BENCHMARK_TIME_LIMIT_SECONDS: float = 4 * 60 * 60
    RESET_SETTLE_SECONDS: float = 1.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = None


settings = Settings()

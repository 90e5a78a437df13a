"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Clip queue API settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")
    database_ssl: str = Field(
        default="require", description="asyncpg ssl mode ('disable' for local Postgres)"
    )
    run_migrations: bool = Field(default=True, description="Apply pending migrations on startup")

    # Queue
    channel_name: str = Field(default="", description="Channel the queue belongs to (shown in logs)")
    default_queue_limit: int | None = Field(
        default=None, ge=1, description="Queue size limit when settings row has none"
    )

    # Server URLs
    frontend_url: str = Field(default="http://localhost:5173", description="Frontend URL for CORS")

    # Environment
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")

    # Keep-Alive
    enable_keep_alive: bool = Field(default=True, description="Enable heartbeat task")
    keep_alive_interval: int = Field(default=300, description="Heartbeat interval in seconds")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL is a PostgreSQL DSN"""
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError("DATABASE_URL must start with 'postgresql://'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @property
    def cors_origins(self) -> list[str]:
        return [self.frontend_url]

    @property
    def ssl_mode(self) -> str | None:
        return None if self.database_ssl.lower() == "disable" else self.database_ssl

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]

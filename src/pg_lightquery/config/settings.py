"""
Configuration management for pg-lightquery.

This module provides environment-based configuration using Pydantic BaseSettings,
so the same code can run against development, testing and production databases
while credentials stay outside the source tree.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine project root for resolving .env by default
PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
ENV_FILE_OVERRIDE = os.getenv("PGLQ_ENV_FILE")
if ENV_FILE_OVERRIDE:
    env_file_candidate = Path(ENV_FILE_OVERRIDE).expanduser()
    if not env_file_candidate.is_absolute():
        env_file_candidate = PROJECT_ROOT / env_file_candidate
    SETTINGS_ENV_FILE = env_file_candidate
else:
    SETTINGS_ENV_FILE = DEFAULT_ENV_FILE


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Environment variables are automatically loaded with the PGLQ_ prefix.
    For example, PGLQ_AUDIT_COLUMN will override the audit_column setting.

    Fields without prefix (uppercase names):
    - DATABASE_URL: Database connection string (required in prod)
    - ENVIRONMENT: Deployment environment (dev, staging, prod)
    - LOG_LEVEL: Logging level (uppercase)
    - DB_POOL_SIZE: Maximum connections held by the gateway pool
    - DB_CONNECT_TIMEOUT: Connection timeout in seconds
    - DB_RETRY_ATTEMPTS: Attempts to acquire a pooled connection
    - DB_RETRY_BACKOFF_MS: Base backoff between acquisition attempts
    """

    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="PostgreSQL connection string used by the execution gateway",
    )
    ENVIRONMENT: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        validation_alias="ENVIRONMENT",
        description="Deployment environment",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level (uppercase)",
    )
    DB_POOL_SIZE: int = Field(
        default=10,
        validation_alias="DB_POOL_SIZE",
        description="Database connection pool size",
    )
    DB_CONNECT_TIMEOUT: int = Field(
        default=5,
        validation_alias="DB_CONNECT_TIMEOUT",
        description="Connection timeout in seconds",
    )
    DB_RETRY_ATTEMPTS: int = Field(
        default=3,
        validation_alias="DB_RETRY_ATTEMPTS",
        description="Attempts to acquire a pooled connection before failing",
    )
    DB_RETRY_BACKOFF_MS: int = Field(
        default=1000,
        validation_alias="DB_RETRY_BACKOFF_MS",
        description="Base backoff in milliseconds, doubled on every retry",
    )

    # Statement building defaults
    audit_column: str = Field(
        default="lastChangedBy",
        description="Column stamped with the acting user on insert/update when declared",
    )
    default_audit_user: str = Field(
        default="SERVER",
        description="User recorded in the audit column when the caller passes none",
    )

    # Table definitions
    tables_config: str = Field(
        default="./config/tables.yml",
        description="Path to the YAML file holding table definitions",
    )

    def get_database_connection_string(self) -> Optional[str]:
        """Get the PostgreSQL connection string.

        Automatically corrects the 'postgres://' scheme to 'postgresql://'.
        """
        final_uri = self.DATABASE_URL
        if final_uri and final_uri.startswith("postgres://"):
            final_uri = final_uri.replace("postgres://", "postgresql://", 1)
        return final_uri

    @model_validator(mode="after")
    def validate_production_database_url(self) -> "Settings":
        """Validate that production environment uses PostgreSQL.

        Raises:
            ValueError: If ENVIRONMENT is 'prod' and database URL is missing
                or not PostgreSQL
        """
        if self.ENVIRONMENT != "prod":
            return self

        db_url = self.get_database_connection_string() or ""
        if not db_url.startswith("postgresql://"):
            db_url_preview = db_url[:20]
            raise ValueError(
                "Production environment requires PostgreSQL database. "
                f"Database URL must start with 'postgresql://', "
                f"got: {db_url_preview!r}"
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="PGLQ_",
        env_file=str(SETTINGS_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and reused across the process; tests that
    change the environment call ``get_settings.cache_clear()``.

    Returns:
        Settings instance with loaded configuration
    """
    return Settings()

"""
Configuration settings for the user store.

Uses Pydantic Settings to load environment variables for the database
connection, pool sizing, and logging. Both the libpq variable names
(PGHOST, PGPORT, ...) and the DB_* names are accepted.
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", validation_alias=AliasChoices("db_host", "PGHOST", "DB_HOST"))
    db_port: int = Field(5432, validation_alias=AliasChoices("db_port", "PGPORT", "DB_PORT"))
    db_user: str = Field("postgres", validation_alias=AliasChoices("db_user", "PGUSER", "DB_USER"))
    db_password: str = Field(
        "", validation_alias=AliasChoices("db_password", "PGPASSWORD", "DB_PASSWORD")
    )
    db_name: str = Field(
        "postgres", validation_alias=AliasChoices("db_name", "PGDATABASE", "DB_NAME")
    )
    db_statement_timeout_ms: int = Field(
        30_000,
        ge=0,
        validation_alias=AliasChoices("db_statement_timeout_ms", "DB_STATEMENT_TIMEOUT_MS"),
    )

    # Pool
    pool_min_size: int = Field(
        1, ge=1, validation_alias=AliasChoices("pool_min_size", "POOL_MIN_SIZE")
    )
    pool_max_size: int = Field(
        20, ge=1, validation_alias=AliasChoices("pool_max_size", "POOL_MAX_SIZE")
    )
    pool_max_idle_seconds: float = Field(
        30.0, gt=0, validation_alias=AliasChoices("pool_max_idle_seconds", "POOL_MAX_IDLE_SECONDS")
    )
    pool_acquire_timeout_seconds: float = Field(
        5.0,
        gt=0,
        validation_alias=AliasChoices(
            "pool_acquire_timeout_seconds", "POOL_ACQUIRE_TIMEOUT_SECONDS"
        ),
    )

    # Application
    app_env: str = Field("development", validation_alias=AliasChoices("app_env", "APP_ENV"))
    log_level: str = Field("INFO", validation_alias=AliasChoices("log_level", "LOG_LEVEL"))
    log_json: bool = Field(False, validation_alias=AliasChoices("log_json", "LOG_JSON"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]

"""Centralized configuration management with environment-aware defaults.

This module implements the configuration system using Pydantic Settings,
providing type-safe configuration with validation and environment variable
support for both the serverless handlers and the local development server.

Features:
- **Type safety**: All configuration values are validated and typed
- **Environment variables**: Supports .env files and environment overrides
- **Nested configuration**: Uses __ delimiter for log and tracing sections
- **Database variables**: Reads the DB_* variables set on the function
- **Auto-detection**: Picks log formatter and trace exporter for AWS Lambda
- **Caching**: Configuration is cached for the lifetime of the process

Configuration sources (in order of precedence):
1. Environment variables
2. .env file in project root
3. Default values in model definitions
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from user_api.core.constants import MILLISECONDS_PER_SECOND


class LogConfig(BaseModel):
    """Logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json", "aws"] | None = Field(
        default=None,
        description="Log output formatter. Auto-detected if not specified.",
    )
    enable_sql_logging: bool = Field(
        default=False,
        description="Enable slow SQL query logging",
    )
    slow_query_threshold_ms: int = Field(
        default=100,
        gt=0,
        description="Slow query threshold in milliseconds",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "api_key",
            "authorization",
        ],
        description="Field names to redact",
    )


class ObservabilityConfig(BaseModel):
    """Tracing configuration."""

    enable_tracing: bool = Field(
        default=True,
        description="Enable OpenTelemetry tracing",
    )
    exporter_type: Literal["console", "aws", "otlp", "none"] = Field(
        default="console",
        description="Trace exporter type. Defaults to console for development.",
    )
    exporter_endpoint: str | None = Field(
        default=None,
        description="OTLP exporter endpoint (for OTLP/AWS exporters)",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Trace sampling rate (0.0 to 1.0)",
    )

    @field_validator("exporter_endpoint", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


class DatabaseConfig(BaseSettings):
    """Database connection settings read from the DB_* environment variables.

    Host and database name have no defaults: the pool provider refuses to
    build a data source without them. Pool sizing follows the serverless
    model, where the platform scales out processes and each process keeps
    a small pool alive across warm invocations.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str | None = Field(default=None, description="Database host")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    name: str | None = Field(default=None, description="Database name")
    user: str | None = Field(default=None, description="Database user")
    password: str | None = Field(default=None, description="Database password")
    driver: str = Field(
        default="postgresql+psycopg",
        description="SQLAlchemy dialect+driver used to build the engine URL",
    )
    max_pool_size: int = Field(
        default=2,
        ge=1,
        le=100,
        description="Maximum number of connections held by the pool",
    )
    min_idle: int = Field(
        default=1,
        ge=0,
        le=100,
        description="Connections kept open while idle",
    )
    connection_timeout_ms: int = Field(
        default=5000,
        gt=0,
        le=300_000,
        description="Timeout in milliseconds for borrowing a connection",
    )
    pool_pre_ping: bool = Field(
        default=True,
        description="Whether to test connections before using them",
    )
    echo: bool = Field(
        default=False,
        description="Whether to log SQL statements (use only for debugging)",
    )

    @field_validator("host", "name", "user", "password", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v

    @property
    def url(self) -> str:
        """Connection URL without credentials, safe for logging."""
        return f"postgresql://{self.host}:{self.port}/{self.name}"

    @property
    def pool_timeout_seconds(self) -> float:
        """Connection acquisition timeout in seconds."""
        return self.connection_timeout_ms / MILLISECONDS_PER_SECOND


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application settings
    app_name: str = Field(default="user-api", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # Local server settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging configuration
    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )

    # Observability configuration
    observability_config: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )

    def model_post_init(self, __context: object) -> None:
        """Post initialization to set environment-based defaults."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._detect_formatter()

        if self.environment == "production":
            if self.observability_config.exporter_type == "console":
                self.observability_config.exporter_type = self._detect_exporter()
            if self.observability_config.trace_sample_rate == 1.0:
                self.observability_config.trace_sample_rate = 0.1

    def _detect_formatter(self) -> Literal["console", "json", "aws"]:
        """Auto-detect log formatter based on environment."""
        if os.getenv("AWS_EXECUTION_ENV"):  # AWS Lambda
            return "aws"
        if self.environment == "development":
            return "console"
        return "json"

    def _detect_exporter(self) -> Literal["console", "aws", "otlp", "none"]:
        """Auto-detect trace exporter based on environment."""
        if os.getenv("AWS_EXECUTION_ENV"):
            return "aws"
        return "otlp"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

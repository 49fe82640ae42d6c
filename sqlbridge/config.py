"""
Application Configuration

Pydantic-based settings management using environment variables.
Supports nested configuration, validation, and caching.

Usage:
    from sqlbridge.config import get_settings

    settings = get_settings()
    print(settings.llm.google_model)
    print(settings.database.url)
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when required configuration (credentials, URLs) is missing."""

    pass


class LLMSettings(BaseSettings):
    """LLM provider configuration."""

    provider: Literal["google", "local"] = Field(
        default="google", description="LLM provider used for SQL translation"
    )

    # Google configuration
    google_api_key: str | None = Field(None, description="Google AI (Gemini) API key")
    google_model: str = Field(
        default="gemini-2.5-flash", description="Gemini model used for translation"
    )
    google_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Base URL of the Gemini REST API",
    )

    # Local model configuration
    local_base_url: str = Field(
        default="http://localhost:11434",
        description="Base URL for an OpenAI-compatible local model server",
    )
    local_model: str = Field(default="llama3.1:8b", description="Local model name")

    # Common settings
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Temperature for LLM responses (0.0 = deterministic)",
    )
    max_tokens: int = Field(
        default=2000,
        gt=0,
        le=16000,
        description="Maximum tokens per LLM response",
    )
    timeout: int = Field(
        default=30,
        gt=0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for transient transport failures (429, 5xx, timeouts)",
    )
    retry_backoff_seconds: float = Field(
        default=0.25,
        gt=0.0,
        le=10.0,
        description="Base delay for exponential retry backoff",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("google_api_key", mode="before")
    @classmethod
    def normalize_api_key(cls, v: str | None) -> str | None:
        """Treat empty strings as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_provider_keys(self) -> "LLMSettings":
        """Ensure an API key is set for the selected provider."""
        if self.provider == "google" and not self.google_api_key:
            raise ValueError("API key required for google provider. Set LLM_GOOGLE_API_KEY")
        return self


class DatabaseSettings(BaseSettings):
    """Target database configuration."""

    url: AnyUrl | None = Field(
        None,
        description="Target database connection URL (the database you query)",
    )
    pool_size: int = Field(
        default=5,
        gt=0,
        le=20,
        description="Database connection pool size",
    )
    command_timeout: int = Field(
        default=30,
        gt=0,
        description="Timeout in seconds for introspection and query commands",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("url", mode="before")
    @classmethod
    def normalize_url(cls, v: str | AnyUrl | None) -> str | AnyUrl | None:
        """Treat empty strings as missing."""
        if v == "":
            return None
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: AnyUrl | None) -> AnyUrl | None:
        """Validate supported database URL schemes."""
        if v is None:
            return v
        parsed = urlparse(str(v))
        scheme = parsed.scheme.split("+")[0].lower() if parsed.scheme else ""
        if scheme not in {"postgres", "postgresql"}:
            raise ValueError("DATABASE_URL must use the postgresql scheme.")
        if not parsed.hostname:
            raise ValueError("DATABASE_URL must include a host.")
        return v


class RetrievalSettings(BaseSettings):
    """Schema retrieval and prompt sizing."""

    max_tables: int = Field(
        default=4,
        ge=1,
        le=50,
        description="Maximum ranked tables included in the prompt",
    )
    max_columns_per_table: int = Field(
        default=8,
        ge=1,
        le=200,
        description="Maximum scored columns per table (keys are always added)",
    )
    max_tokens: int = Field(
        default=1800,
        gt=0,
        le=200000,
        description="Approximate prompt budget in tokens (4 characters per token)",
    )
    bidirectional_joins: bool = Field(
        default=False,
        description="Allow join search to traverse foreign keys from the referenced side",
    )
    name_lookup_tables: list[str] = Field(
        default_factory=lambda: ["Club", "Competition"],
        description="Tables looked up by name; their name columns are always sent",
    )
    name_columns: list[str] = Field(
        default_factory=lambda: ["Name", "ShortName"],
        description="Display-name and short-code columns of name lookup tables",
    )

    model_config = SettingsConfigDict(
        env_prefix="RETRIEVAL_",
        env_file=".env",
        extra="ignore",
    )


class SchemaSettings(BaseSettings):
    """Schema cache and enrichment configuration."""

    cache_dir: Path = Field(
        default=Path.home() / ".sqlbridge" / "cache",
        description="Directory holding cached schema snapshots",
    )
    cache_key: str = Field(
        default="schema-registry",
        min_length=1,
        description="Key (file stem) of the cached schema snapshot",
    )
    hints_path: Path | None = Field(
        default=None,
        description="Optional YAML file with allowed tables, summaries and synonyms",
    )
    default_schema: str = Field(
        default="public",
        description="Schema assumed for bare table names",
    )

    model_config = SettingsConfigDict(
        env_prefix="SCHEMA_",
        env_file=".env",
        extra="ignore",
    )


class SafetySettings(BaseSettings):
    """Execution limits applied to validated SQL."""

    max_rows: int = Field(
        default=200,
        gt=0,
        le=100000,
        description="Hard cap on rows returned by a query",
    )
    timeout: int = Field(
        default=30,
        gt=0,
        description="Statement timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="SQL_",
        env_file=".env",
        extra="ignore",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Log timestamp format",
    )
    file: Path | None = Field(
        default=None,
        description="Optional log file path (None = stdout only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore",
    )

    def configure(self) -> None:
        """Configure Python logging with these settings."""
        handlers: list[logging.Handler] = [logging.StreamHandler()]

        if self.file:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.file))

        logging.basicConfig(
            level=getattr(logging, self.level),
            format=self.format,
            datefmt=self.date_format,
            handlers=handlers,
            force=True,  # Override any existing configuration
        )


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    Settings are nested by domain.

    Environment Variables:
        APP_NAME: Application name for logging
        LLM_*: LLM provider configuration (see LLMSettings)
        DATABASE_*: Target database configuration (see DatabaseSettings)
        RETRIEVAL_*: Retrieval and prompt sizing (see RetrievalSettings)
        SCHEMA_*: Schema cache and hints (see SchemaSettings)
        SQL_*: Execution limits (see SafetySettings)
        LOG_*: Logging configuration (see LoggingSettings)

    Example:
        >>> settings = get_settings()
        >>> settings.retrieval.max_tables
        4
        >>> settings.safety.max_rows
        200
    """

    app_name: str = Field(
        default="SQLBridge",
        description="Application name",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    schema_cache: SchemaSettings = Field(default_factory=SchemaSettings)
    safety: SafetySettings = Field(default_factory=SafetySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def configure_logging(self) -> "Settings":
        """Configure logging when settings are loaded."""
        self.logging.configure()
        return self

    def model_post_init(self, __context) -> None:
        """Log configuration on initialization."""
        logger = logging.getLogger(__name__)
        logger.info(
            f"Settings loaded for {self.app_name}",
            extra={
                "llm_provider": self.llm.provider,
                "max_tables": self.retrieval.max_tables,
                "max_rows": self.safety.max_rows,
            },
        )

    def require_database_url(self) -> str:
        """Return the target database URL or fail fast."""
        if self.database.url is None:
            raise ConfigurationError(
                "No target database configured. Set DATABASE_URL in the environment or .env."
            )
        return str(self.database.url)


_DOTENV_PATH = Path.cwd() / ".env"


def _apply_dotenv_precedence() -> None:
    env_source = os.getenv("SQLBRIDGE_ENV_SOURCE", "dotenv").lower()
    if env_source not in {"dotenv", "envfile", "file"}:
        return
    if _DOTENV_PATH.exists():
        load_dotenv(_DOTENV_PATH, override=True)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses functools.lru_cache to ensure settings are loaded only once.

    Returns:
        Settings: Singleton settings instance
    """
    _apply_dotenv_precedence()
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()

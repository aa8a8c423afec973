"""
Configuration management for MedInvoice.

Settings come from ``MEDINVOICE_*`` environment variables and an optional
``.env`` file.
"""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGED_REFERENCE_DATA = Path(__file__).resolve().parent.parent / "data" / "reference_data.yaml"


class Settings(BaseSettings):
    """Application settings."""

    # API
    api_title: str = "MedInvoice API"
    api_version: str = "0.1.0"
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Storage
    database_path: str = "./data/medinvoice.duckdb"
    reference_data_path: Path = PACKAGED_REFERENCE_DATA
    seed_reference_data: bool = True

    # Invoicing
    default_project_id: int = 1
    max_subsidies_per_invoice: int = 1
    cost_precision: int = Field(default=4, ge=0, le=8)

    model_config = SettingsConfigDict(
        env_prefix="MEDINVOICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is valid."""
        valid_envs = ["development", "testing", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings, reading an explicit env file first when given."""
    if env_file:
        load_dotenv(env_file)
    return Settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return load_settings()

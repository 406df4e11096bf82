"""
Settings Configuration
======================

Environment variable management using pydantic-settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    fastapi_host: str = Field(default="0.0.0.0", description="Server host")
    fastapi_port: int = Field(default=8010, description="Server port")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # -------------------------------------------------------------------------
    # Text-Completion Assistant
    # -------------------------------------------------------------------------
    llm_enabled: bool = Field(
        default=True, description="Use the assistant for column mapping"
    )
    llm_backend: Literal["ollama", "openai"] = Field(
        default="openai", description="Assistant backend"
    )
    llm_model: str = Field(default="gpt-4o-mini", description="Assistant model name")
    llm_base_url: str = Field(
        default="https://api.openai.com", description="Assistant API base URL"
    )
    llm_api_key: str | None = Field(default=None, description="Assistant API key")
    llm_timeout: float = Field(
        default=20.0, ge=1.0, le=300.0, description="Assistant request timeout (seconds)"
    )
    llm_temperature: float = Field(
        default=0.1, ge=0.0, le=2.0, description="Sampling temperature"
    )
    llm_max_tokens: int = Field(default=2048, ge=64, description="Max completion tokens")

    # -------------------------------------------------------------------------
    # Column Mapping Thresholds
    # -------------------------------------------------------------------------
    mapping_min_confidence: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Minimum overall mapping confidence"
    )
    mapping_min_price_coverage: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Minimum numeric coverage of price column"
    )
    mapping_min_price_max: float = Field(
        default=100_000, ge=0, description="Domestic plausibility floor for sampled price max"
    )
    mapping_max_retries: int = Field(
        default=1, ge=0, le=3, description="Retries with feedback after a rejected mapping"
    )
    mapping_sample_rows: int = Field(
        default=10, ge=1, le=10, description="Sample rows sent to the assistant"
    )

    # -------------------------------------------------------------------------
    # Collaborators
    # -------------------------------------------------------------------------
    config_service_url: str | None = Field(
        default=None, description="Pricing configuration service URL"
    )
    config_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Configuration retrieval timeout"
    )
    config_file_path: str | None = Field(
        default="config/configuracion.json",
        description="Local pricing configuration snapshot (JSON)",
    )
    equivalence_service_url: str | None = Field(
        default=None, description="Equivalence lookup service URL"
    )
    equivalence_timeout_seconds: float = Field(
        default=5.0, gt=0, description="Per-row equivalence lookup timeout"
    )

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------
    processing_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Whole file-processing timeout"
    )
    max_concurrent_rows: int = Field(
        default=20, ge=1, le=500, description="Rows priced concurrently"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()

"""
Configuration management for the eventnet backend.

This module centralizes environment-driven configuration using Pydantic's
`BaseSettings`. All services consume the shared `settings` instance so that
thresholds and connection details stay consistent across intake and the
assistant.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AnyUrl, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # General application settings
    API_TITLE: str = "Eventnet"
    API_VERSION: str = "0.1.0"
    ENVIRONMENT: str = Field("development", pattern=r"^(development|staging|production)$")
    LOG_LEVEL: str = "INFO"

    # Document store
    MONGODB_URL: AnyUrl = Field("mongodb://localhost:27017")
    MONGODB_DATABASE: str = "eventnet"

    # Vector index
    PINECONE_API_KEY: Optional[str] = None
    PINECONE_INDEX: str = "eventnet-embeddings"
    PINECONE_DIMENSION: PositiveInt = 1536

    # LLM provider configuration
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    CLAUDE_MODEL: str = "claude-3-5-haiku-latest"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    MAX_TOKENS: int = 800
    TEMPERATURE: float = 0.2

    # Retrieval tuning
    SIMILARITY_THRESHOLD: float = 0.45
    MEMBER_SEARCH_LIMIT: PositiveInt = 10
    EVENT_METADATA_LIMIT: PositiveInt = 3
    EVENT_DOCUMENT_LIMIT: PositiveInt = 5
    SOURCE_LIMIT: PositiveInt = 3
    SNIPPET_LENGTH: PositiveInt = 50

    # Member intake
    PHONE_GENERATION_ATTEMPTS: PositiveInt = 100
    PLACEHOLDER_EMAIL_DOMAIN: str = "placeholder.invalid"
    IMPORT_CONCURRENCY: PositiveInt = 1
    REQUIRE_VERIFIED_EVENTS: bool = False
    DOCUMENT_CHUNK_SIZE: PositiveInt = 512
    DOCUMENT_CHUNK_OVERLAP: int = 128

    # Tracing
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[AnyUrl] = None
    OTEL_EXPORTER_OTLP_HEADERS: Optional[str] = None

    @field_validator("SIMILARITY_THRESHOLD")
    @classmethod
    def validate_threshold(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("SIMILARITY_THRESHOLD must be between 0 and 1")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()

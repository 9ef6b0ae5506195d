"""Application configuration management."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PROMPT_CONFIG = Path(__file__).resolve().parent / "prompts" / "analysis_prompts.yaml"
# Ten years; keeps now - ttl within datetime range
MAX_CACHE_TTL_DAYS = 3650


@dataclass(frozen=True)
class RagCacheConfig:
    """Semantic cache policy, fixed for the lifetime of a cache instance."""

    enabled: bool = True
    similarity_threshold: float = 0.85
    ttl_days: int = 7


class Settings(BaseSettings):
    """Centralised application settings derived from environment variables."""

    anthropic_api_key: str
    openai_api_key: str

    database_url: str = Field(
        default="sqlite:///./data/run_analyses.db",
        description="SQLAlchemy-compatible database URL.",
    )
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8000, ge=1, le=65535)

    debug: bool = Field(default=False)

    anthropic_model: str = Field(default="claude-sonnet-4-5-20250929")
    llm_max_tokens: int = Field(default=2048, ge=1)
    llm_temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    embedding_model: str = Field(default="text-embedding-3-small")
    prompt_config_path: Path = Field(default=DEFAULT_PROMPT_CONFIG)

    # rag.cache.* options
    rag_cache_enabled: bool = Field(default=True)
    rag_cache_similarity_threshold: float = Field(default=0.85)
    rag_cache_ttl_days: int = Field(default=7)

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("rag_cache_similarity_threshold")
    @classmethod
    def validate_similarity_threshold(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("RAG_CACHE_SIMILARITY_THRESHOLD must be between 0.0 and 1.0")
        return value

    @field_validator("rag_cache_ttl_days")
    @classmethod
    def validate_ttl_days(cls, value: int) -> int:
        if not 0 <= value <= MAX_CACHE_TTL_DAYS:
            raise ValueError(f"RAG_CACHE_TTL_DAYS must be between 0 and {MAX_CACHE_TTL_DAYS}")
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        valid = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper = value.upper()
        if upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(valid))}")
        return upper

    def rag_cache_config(self) -> RagCacheConfig:
        """Snapshot the rag.cache.* options into an immutable policy object."""

        return RagCacheConfig(
            enabled=self.rag_cache_enabled,
            similarity_threshold=self.rag_cache_similarity_threshold,
            ttl_days=self.rag_cache_ttl_days,
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance so it can be reused across the app."""

    settings = Settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    return settings


def load_prompt_config(path: Path) -> dict[str, Any]:
    """Load prompt templates from YAML; a missing file yields an empty mapping."""

    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}

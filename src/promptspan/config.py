"""
Configuration management for promptspan.

Configuration is loaded from:
1. Environment variables (highest priority, ``PROMPTSPAN_`` prefix,
   ``__`` between section and field, e.g. ``PROMPTSPAN_OPTIONS__MAX_SPANS``)
2. promptspan.yaml file
3. Default values (lowest priority)
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from promptspan.core import constants as c
from promptspan.exceptions import ConfigurationError


class PerformanceSettings(BaseSettings):
    """Hard limits and token estimation for annotator calls."""

    max_spans_absolute_limit: int = Field(default=c.MAX_SPANS_ABSOLUTE_LIMIT, gt=0)
    tokens_per_span: int = Field(default=c.TOKENS_PER_SPAN, gt=0)
    base_token_overhead: int = Field(default=c.BASE_TOKEN_OVERHEAD, ge=0)
    max_tokens_ceiling: int = Field(default=c.MAX_TOKENS_CEILING, gt=0)

    def estimate_max_tokens(self, max_spans: int) -> int:
        """Output token budget for an annotator asked for *max_spans* spans."""
        estimate = self.base_token_overhead + max(0, max_spans) * self.tokens_per_span
        return min(estimate, self.max_tokens_ceiling)


class PolicySettings(BaseSettings):
    """Default validation policy."""

    non_technical_word_limit: int = Field(default=c.DEFAULT_NON_TECHNICAL_WORD_LIMIT, gt=0)
    allow_overlap: bool = c.DEFAULT_ALLOW_OVERLAP


class OptionsSettings(BaseSettings):
    """Default processing options."""

    max_spans: int = Field(default=c.DEFAULT_MAX_SPANS, gt=0)
    min_confidence: float = Field(default=c.DEFAULT_MIN_CONFIDENCE, ge=0.0, le=1.0)
    template_version: str = c.DEFAULT_TEMPLATE_VERSION


class ChunkingSettings(BaseSettings):
    """Long-text chunking for annotation."""

    max_words_per_chunk: int = Field(default=c.DEFAULT_MAX_WORDS_PER_CHUNK, gt=0)
    overlap_words: int = Field(default=c.DEFAULT_CHUNK_OVERLAP_WORDS, ge=0)
    max_concurrent_chunks: int = Field(default=c.MAX_CONCURRENT_CHUNKS, gt=0)
    process_chunks_in_parallel: bool = True

    @model_validator(mode="after")
    def _overlap_smaller_than_chunk(self) -> "ChunkingSettings":
        if self.overlap_words >= self.max_words_per_chunk:
            raise ValueError("overlap_words must be smaller than max_words_per_chunk")
        return self


class MergeSettings(BaseSettings):
    """Adjacent-span merging."""

    max_merged_words: int = Field(default=c.DEFAULT_MAX_MERGED_WORDS, gt=0)
    max_gap_chars: int = Field(default=c.MAX_MERGE_GAP_CHARS, ge=0)


class LocatorSettings(BaseSettings):
    """Substring relocation."""

    fuzzy_matching: bool = False
    fuzzy_threshold: float = Field(default=c.DEFAULT_FUZZY_THRESHOLD, ge=0.0, le=1.0)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["text", "json"] = "text"
    file: str | None = None


class Settings(BaseSettings):
    """Main settings class that combines all configuration sections."""

    model_config = SettingsConfigDict(
        env_prefix="PROMPTSPAN_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)
    policy: PolicySettings = Field(default_factory=PolicySettings)
    options: OptionsSettings = Field(default_factory=OptionsSettings)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    merging: MergeSettings = Field(default_factory=MergeSettings)
    locator: LocatorSettings = Field(default_factory=LocatorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML values arrive as init kwargs; environment must still win
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


def load_yaml_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from YAML file."""
    if path is None:
        # Look for promptspan.yaml in standard locations
        candidates = [
            Path("promptspan.yaml"),
            Path("config/promptspan.yaml"),
            Path.home() / ".config" / "promptspan" / "promptspan.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path and path.exists():
        with open(path) as f:
            return yaml.safe_load(f) or {}

    return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    yaml_config = load_yaml_config()
    try:
        return Settings(**yaml_config)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid promptspan configuration",
            details={"errors": e.error_count()},
        ) from e


def reload_settings() -> Settings:
    """Force reload of settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()

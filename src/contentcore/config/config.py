"""
Configuration management for ContentCore using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Option Models ---


class CustomSelectors(BaseModel):
    """Caller-supplied selector overrides for the cleaner."""

    remove: List[str] = Field(default_factory=list, description="Extra selectors to remove.")
    preserve: List[str] = Field(
        default_factory=list,
        description="Extra attribute names kept during attribute cleanup.",
    )


class CleaningOptions(BaseModel):
    """Boilerplate removal toggles."""

    model_config = ConfigDict(frozen=True)

    remove_ads: bool = True
    remove_navigation: bool = True
    remove_comments: bool = True
    remove_related: bool = True
    remove_footers: bool = True
    remove_sidebars: bool = True
    preserve_images: bool = True
    preserve_videos: bool = True
    preserve_iframes: bool = False
    remove_popups: bool = True
    remove_cookie_banners: bool = True
    remove_newsletter_signups: bool = True
    preserve_tables: bool = True
    preserve_lists: bool = True
    preserve_embeds: bool = True
    aggressive_mode: bool = False
    custom_selectors: Optional[CustomSelectors] = None


class ExtractionOptions(BaseModel):
    """Feature flags for a single extraction."""

    model_config = ConfigDict(frozen=True)

    adapter: Optional[str] = Field(default=None, description="Force a named site adapter.")
    cleaning_options: CleaningOptions = Field(default_factory=CleaningOptions)
    min_paragraph_length: int = Field(default=20, ge=0)
    include_metadata: bool = True
    detect_sections: bool = False
    score_paragraphs: bool = False
    extract_tables: bool = False
    extract_lists: bool = False
    extract_embeds: bool = False
    extract_structured_data: bool = False
    extract_entities: bool = False
    calculate_readability: bool = False
    analyze_sentiment: bool = False
    generate_summary: bool = False
    timeout: float = Field(default=30.0, gt=0, description="Fetch timeout in seconds.")


# --- Service Configuration Models ---


class CacheOptions(BaseModel):
    """Result cache configuration."""

    enabled: bool = True
    ttl: float = Field(default=3600.0, gt=0, description="Entry lifetime in seconds.")
    max_size: float = Field(default=50.0, gt=0, description="Primary cache size limit in MB.")
    max_entries: int = Field(default=100, gt=0, description="Primary cache entry limit.")
    strategy: Literal["lru", "lfu", "fifo"] = "lru"
    persistent: bool = Field(default=False, description="Keep an unbounded secondary store.")


class RateLimiterConfig(BaseModel):
    max_requests: int = Field(default=10, gt=0)
    window_seconds: float = Field(default=60.0, gt=0)


class FetchConfig(BaseModel):
    """HTTP fetch configuration."""

    timeout: float = Field(default=30.0, gt=0, description="Default HTTP request timeout in seconds.")
    user_agent: str = Field(
        default="ContentCoreBot/1.0 (+https://github.com/contentcore/contentcore)",
        description="User-Agent string for HTTP requests.",
    )
    follow_redirects: bool = True
    max_content_size_mb: float = Field(default=10.0, gt=0, description="Largest body accepted, in MB.")


class BatchConfig(BaseModel):
    concurrency: int = Field(default=3, gt=0)
    stream_chunk_size: int = Field(default=10, gt=0)


class MonitoringConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v.upper()

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "ContentCore"
    version: str = "0.1.0"
    cache: CacheOptions = Field(default_factory=CacheOptions)
    rate_limiter: RateLimiterConfig = Field(default_factory=RateLimiterConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    extraction: ExtractionOptions = Field(default_factory=ExtractionOptions)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="CONTENTCORE_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    paths_to_check = [
        current_dir / "contentcore.yaml",
        current_dir / "contentcore.yml",
        current_dir / "config.yaml",
    ]
    for path in paths_to_check:
        if path.exists():
            return path
    return None


"""
Configuration management for the commit crawler.

This module provides centralized configuration with:
- Repository reference conventions used to find the crawl head
- Diff extraction limits (blob size, binary sniffing)
- Logging configuration
"""

from typing import List
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import BaseSettings as PydanticBaseSettings


class RepositorySettings(BaseSettings):
    """Reference names used to locate the default branch."""

    remote_head_ref: str = Field(
        default="refs/remotes/origin/HEAD",
        description="Remote-tracking pointer to the default branch",
    )
    main_branch_refs: List[str] = Field(
        default=["refs/heads/master", "refs/heads/main"],
        description="Local main-branch references, tried in order",
    )

    @field_validator("remote_head_ref")
    @classmethod
    def validate_remote_head_ref(cls, v):
        if not v.startswith("refs/"):
            raise ValueError("Remote head reference must be a full ref name")
        return v

    @field_validator("main_branch_refs")
    @classmethod
    def validate_main_branch_refs(cls, v):
        if not v:
            raise ValueError("At least one main branch reference is required")
        for ref in v:
            if not ref.startswith("refs/"):
                raise ValueError(f"Main branch reference must be a full ref name: {ref}")
        return v


class DiffSettings(BaseSettings):
    """Diff extraction settings."""

    detect_copies: bool = Field(default=True, description="Classify copied files as copies")
    max_blob_size: int = Field(
        default=50 * 1024 * 1024, description="Largest blob read into memory (50MB)"
    )
    binary_sample_size: int = Field(
        default=8000, description="Leading bytes inspected for binary content"
    )
    encoding: str = Field(default="utf-8", description="Encoding used to decode blob text")

    @field_validator("max_blob_size", "binary_sample_size")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("Size limits must be positive")
        return v


class MonitoringSettings(BaseSettings):
    """Logging configuration settings."""

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log record format",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


class Settings(PydanticBaseSettings):
    """
    Main application settings.

    Values come from the environment or a ``.env`` file; nested groups use
    ``__`` as delimiter, e.g. ``DIFF__MAX_BLOB_SIZE=1048576``.
    """

    app_name: str = Field(default="commit-crawler", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    repository: RepositorySettings = Field(default_factory=RepositorySettings)
    diff: DiffSettings = Field(default_factory=DiffSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Example:
        >>> settings = get_settings()
        >>> print(settings.repository.remote_head_ref)
    """
    return Settings()


# Global settings instance
settings = get_settings()

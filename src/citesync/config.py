"""Configuration management for citesync."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (CITESYNC_*)."""

    model_config = SettingsConfigDict(
        env_prefix="CITESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Style used when a payload does not declare a detectable one
    default_style: str = "apa"

    # Marker grammar
    max_citation_number: int = 1000  # Larger numbers are treated as noise (years, pages)
    max_range_span: int = 50  # "[3-500]" is malformed, not a 498-reference range

    # Export
    track_changes_author: str = "citesync"
    accepted_suffix: str = "_corrected"
    tracked_suffix: str = "_tracked_changes"
    references_heading: str = "References"

    # Status polling (caller-provided capability)
    poll_interval_seconds: float = 2.0
    poll_max_interval_seconds: float = 30.0
    poll_max_attempts: int = 30  # 30 polls * 2s = roughly one minute before backoff
    processing_states: tuple[str, ...] = ("ANALYZING", "QUEUED", "PROCESSING")

    # Logging
    log_level: str = "WARNING"
    log_format: str = "standard"

    # Debug mode
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Configuration management for the call event sync service."""

from functools import lru_cache
from typing import Any
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ===========================================
    # Supabase Configuration
    # ===========================================
    SUPABASE_URL: str = Field(default="", description="Supabase project URL")
    SUPABASE_KEY: str = Field(default="", description="Supabase service role key")

    # ===========================================
    # Storage Configuration
    # ===========================================
    CALL_STORE_BACKEND: str = Field(
        default="supabase",
        description="Call store backend: 'supabase' or 'memory'"
    )
    CALLS_TABLE: str = Field(default="retell_calls", description="Call records table")
    CALL_ANALYSIS_TABLE: str = Field(
        default="retell_call_analysis",
        description="Call analysis table"
    )
    CANDIDATES_TABLE: str = Field(
        default="campaign_candidates",
        description="Campaign candidates table"
    )

    # ===========================================
    # Processing Policies
    # ===========================================
    ACKNOWLEDGE_ON_PERSISTENCE_ERROR: bool = Field(
        default=True,
        description="Return 200 to the webhook sender even when a write fails"
    )
    CANDIDATE_OUTCOME_POLICY: str = Field(
        default="overwrite",
        description="'overwrite' on every analysis or 'keep_first'"
    )

    # ===========================================
    # Server Configuration
    # ===========================================
    DEBUG: bool = Field(default=True, description="Debug mode")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# ===========================================
# Answer Parsing
# ===========================================
# Values the native Retell post-call analysis uses for "yes"

TRUTHY_FLAG_VALUES = {"yes", "true", "1"}


def to_bool(value: Any) -> bool:
    """
    Strict boolean for the dashboard answers array.

    Only boolean True or the exact string "true" count as true.
    """
    return value is True or value == "true"


def parse_flag(value: Any) -> bool:
    """
    Lenient boolean for native Retell analysis data.

    Args:
        value: Raw value (bool, "Yes", "TRUE ", "1", ...)

    Returns:
        True for booleans that are True or truthy strings, False otherwise
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_FLAG_VALUES
    return False


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

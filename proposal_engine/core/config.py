"""Configuration management for the Proposal Engine."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ===========================================
    # Supabase Configuration
    # ===========================================
    SUPABASE_URL: str = Field(default="", description="Supabase project URL")
    SUPABASE_KEY: str = Field(
        default="",
        description="Supabase service role key (preferred) or anon key"
    )

    # ===========================================
    # Document Locations
    # ===========================================
    TEMPLATES_DIR: str = Field(
        default="Templates",
        description="Directory holding the section templates"
    )
    OUTPUT_DIR: str = Field(
        default="Output",
        description="Directory receiving generated proposals"
    )
    FRONT_PAGE_TEMPLATE: str = Field(
        default="Template Company.pdf",
        description="Cover template file name inside TEMPLATES_DIR"
    )
    DEFAULT_CONFIG_FILE: str = Field(
        default="data.json",
        description="Config file used when none is given"
    )

    # ===========================================
    # Document Content
    # ===========================================
    PROPOSAL_SUBTITLE: str = Field(
        default="Asset Advisory Proposal",
        description="Subtitle drawn on the fallback front page"
    )
    DEFAULT_CREATED_BY: Optional[str] = Field(
        default=None,
        description="User ID recorded when a caller does not supply one"
    )

    # ===========================================
    # Server Configuration
    # ===========================================
    BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL used to build download links"
    )
    PORT: int = Field(default=8000, description="HTTP port")
    DEBUG: bool = Field(default=True, description="Debug mode")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def templates_path(self) -> Path:
        return Path(self.TEMPLATES_DIR)

    @property
    def output_path(self) -> Path:
        return Path(self.OUTPUT_DIR)


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

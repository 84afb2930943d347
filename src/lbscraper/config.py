from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


# =============================================================================
# Main Application Config
# =============================================================================


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LBSCRAPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # =============================================================================
    # Target site
    # =============================================================================

    base_url: str = Field(
        default="https://letterboxd.com",
        description="Origin of the scraped site, prefixed onto relative film links.",
    )
    selector_scheme: Literal["current", "legacy"] = Field(
        default="current",
        description="Which registered selector set to use for the site markup.",
    )

    # =============================================================================
    # Job lifecycle
    # =============================================================================

    retention_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="How long a finished job stays in the store.",
    )
    page_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay awaited between two listing pages of the same job.",
    )
    max_concurrent_jobs: int = Field(
        default=3,
        ge=1,
        description="Number of jobs allowed to hold a browser session at once.",
    )

    # =============================================================================
    # Browser timeouts (milliseconds)
    # =============================================================================

    navigation_timeout_ms: int = Field(default=60000, gt=0)
    selector_timeout_ms: int = Field(default=10000, gt=0)
    profile_timeout_ms: int = Field(default=10000, gt=0)
    headless: bool = True

    # =============================================================================
    # HTTP server
    # =============================================================================

    api_prefix: str = Field(
        default="/api/v1",
        description="Prefix under which the API routes are mounted.",
    )
    host: str = "0.0.0.0"
    port: int = 8000


# Global config instance
cfg = Config()

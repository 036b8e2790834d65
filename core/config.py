# core/config.py
"""
Runtime settings for the reader screenshot service.

Every value can be overridden through an environment variable of the same
name (or a ``.env`` file next to the process).  The extraction knobs
(``DENSITY_FLOOR``, ``DENSITY_FORMULA``, ``READER_STRATEGY``) are tuned per
deployment.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------
    PROJECT_NAME: str = "Reader Screenshot Service"
    HOST: str = "0.0.0.0"
    PORT: int = 3003
    DEBUG: bool = False
    WORKERS: int = 1
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    ALLOWED_HOSTS: List[str] = Field(default_factory=lambda: ["*"])

    # ------------------------------------------------------------------
    # Browser / navigation
    # ------------------------------------------------------------------
    NAVIGATION_TIMEOUT: float = 60.0          # seconds
    WAIT_UNTIL: Literal["load", "domcontentloaded", "networkidle", "commit"] = "networkidle"
    BROWSER_LAUNCH_ATTEMPTS: int = Field(default=3, ge=1)
    MAX_CONCURRENT_PAGES: int = Field(default=4, ge=1)
    ADMISSION_TIMEOUT: float = 30.0           # seconds to wait for a free page slot

    # ------------------------------------------------------------------
    # Lazy-load scrolling
    # ------------------------------------------------------------------
    POST_LOAD_DELAY: float = 2.0
    SCROLL_STEP_PX: int = Field(default=100, ge=1)
    SCROLL_INTERVAL: float = 0.1
    SCROLL_MAX_STEPS: int = Field(default=600, ge=1)
    SCROLL_SETTLE_DELAY: float = 2.0
    SCROLL_TOP_DELAY: float = 1.0

    # ------------------------------------------------------------------
    # Article location & reader view
    # ------------------------------------------------------------------
    DENSITY_FLOOR: int = Field(default=200, ge=0)
    DENSITY_FORMULA: Literal["paragraphs", "text"] = "paragraphs"
    READER_STRATEGY: Literal["replace", "in_place"] = "replace"
    READER_WIDTH_PX: int = 800

    # ------------------------------------------------------------------
    # Images & capture
    # ------------------------------------------------------------------
    MIN_IMAGE_WIDTH: int = 200
    MIN_IMAGE_HEIGHT: int = 100
    CAPTURE_SETTLE_DELAY: float = 2.0
    IMAGE_LOAD_TIMEOUT: float = 10.0

    # ------------------------------------------------------------------
    # Stealth profiles
    # ------------------------------------------------------------------
    STEALTH_PROFILE: str = "default"
    PROFILES_PATH: Path = PROJECT_ROOT / "configs" / "stealth_profiles.yaml"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings object (parsed once)."""
    return Settings()


settings = get_settings()

# services/browser/profile_loader.py
"""
Loads stealth profiles and noise patterns from ``configs/stealth_profiles.yaml``
and validates them with Pydantic models.

Public API:
* ``get_stealth_profile(name)`` – returns a validated ``StealthProfile`` or
  raises ``ProfileNotFoundError``.
* ``get_noise_patterns()`` – the ``NoisePatterns`` block.
* ``list_available_profiles()`` – profile names, offered by ``run.py --profile``.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from core.config import settings


class Viewport(BaseModel):
    width: int = Field(default=1920, gt=0)
    height: int = Field(default=1080, gt=0)


class NavigatorOverrides(BaseModel):
    """Values patched onto ``navigator`` at document-creation time."""
    webdriver: bool = False
    plugins: List[Union[int, str]] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    languages: List[str] = Field(default_factory=lambda: ["en-US", "en"])

    @field_validator("plugins", "languages")
    @classmethod
    def _non_empty(cls, value: list) -> list:
        if not value:
            raise ValueError("navigator overrides must be non-empty")
        return value


class StealthProfile(BaseModel):
    user_agent: str
    viewport: Viewport = Field(default_factory=Viewport)
    headers: Dict[str, str] = Field(default_factory=dict)
    navigator: NavigatorOverrides = Field(default_factory=NavigatorOverrides)

    @field_validator("user_agent")
    @classmethod
    def _collapse_whitespace(cls, value: str) -> str:
        # YAML folded scalars may leave line breaks behind
        return " ".join(value.split())


class NoisePatterns(BaseModel):
    attribute_substrings: List[str] = Field(default_factory=list)
    roles: List[str] = Field(default_factory=list)
    z_index_threshold: int = 1000

    def matches(self, class_name: str = "", element_id: str = "", role: str = "") -> bool:
        """Case-insensitive substring match on class/id, exact match on ``role``."""
        class_name, element_id = (class_name or "").lower(), (element_id or "").lower()
        for fragment in self.attribute_substrings:
            fragment = fragment.lower()
            if fragment in class_name or fragment in element_id:
                return True
        return (role or "").strip() in self.roles


class ProfileCatalogue(BaseModel):
    profiles: Dict[str, StealthProfile]
    noise: NoisePatterns = Field(default_factory=NoisePatterns)


# Simple in-process cache so the YAML is read/validated only once per process
_cached: Optional[ProfileCatalogue] = None


class ProfileNotFoundError(KeyError):
    """Raised when a requested stealth profile does not exist."""

    def __init__(self, profile_name: str):
        super().__init__(f"Stealth profile '{profile_name}' not found.")
        self.profile_name = profile_name


def load_catalogue(path: Optional[Path] = None) -> ProfileCatalogue:
    """Read and validate the YAML file; ``path`` bypasses the cache."""
    global _cached
    if path is None and _cached is not None:
        return _cached

    with (path or settings.PROFILES_PATH).open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    catalogue = ProfileCatalogue(**raw)

    if path is None:
        _cached = catalogue
    return catalogue


def get_stealth_profile(profile_name: str) -> StealthProfile:
    """
    Return a **validated** ``StealthProfile``.

    Raises
    ------
    ProfileNotFoundError
        If the profile name is not present in the YAML.
    """
    try:
        return load_catalogue().profiles[profile_name]
    except KeyError as exc:
        raise ProfileNotFoundError(profile_name) from exc


def get_noise_patterns() -> NoisePatterns:
    return load_catalogue().noise


def list_available_profiles() -> List[str]:
    return list(load_catalogue().profiles.keys())

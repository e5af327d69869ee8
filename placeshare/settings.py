"""Configuration loaded from TOML and overridden by the environment."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Mapping, Optional

import tomllib
from pydantic import BaseModel, Field, ValidationError, model_validator

ENV_PREFIX = "PLACESHARE_"


class AppSettings(BaseModel):
    origin: str = Field(default="http://localhost:3000", min_length=1)
    map_output: Path = Path("data/selected-place.html")


class GeocodingSettings(BaseModel):
    provider: Literal["google", "nominatim"] = "nominatim"
    api_key: Optional[str] = None
    user_agent: str = "placeshare/0.1"
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    base_url: Optional[str] = None

    @model_validator(mode="after")
    def _require_google_key(self) -> "GeocodingSettings":
        if self.provider == "google" and not self.api_key:
            raise ValueError("geocoding.api_key is required for the google provider")
        return self


class DeviceSettings(BaseModel):
    sensor: Literal["ip", "static", "none"] = "ip"
    ip_endpoint: str = "https://ipapi.co/json/"
    static_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    static_lng: Optional[float] = Field(default=None, ge=-180, le=180)


class ClipboardSettings(BaseModel):
    enabled: bool = True


class Settings(BaseModel):
    """Validated settings for one CLI run."""

    app: AppSettings = Field(default_factory=AppSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    device: DeviceSettings = Field(default_factory=DeviceSettings)
    clipboard: ClipboardSettings = Field(default_factory=ClipboardSettings)


def _apply_env(raw: dict, environ: Mapping[str, str]) -> dict:
    overrides = {
        "GOOGLE_API_KEY": ("geocoding", "api_key"),
        "PROVIDER": ("geocoding", "provider"),
        "ORIGIN": ("app", "origin"),
    }
    for suffix, (section, key) in overrides.items():
        value = environ.get(f"{ENV_PREFIX}{suffix}")
        if value:
            raw.setdefault(section, {})[key] = value
    return raw


def load_settings(path: Path, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read the TOML configuration file, apply env overrides and validate."""
    raw: dict = {}
    if path.exists():
        with path.open("rb") as handle:
            try:
                raw = tomllib.load(handle)
            except tomllib.TOMLDecodeError as exc:
                raise ValueError(f"Invalid settings file {path}: {exc}") from exc
    raw = _apply_env(raw, os.environ if environ is None else environ)
    try:
        return Settings(**raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings: {exc}") from exc

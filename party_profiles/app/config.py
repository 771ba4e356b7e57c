from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")

_TRUTHY = {"1", "true", "yes", "y", "on"}


def _env_str(key: str, default: str) -> str:
    # Unset and blank values both fall back to the default.
    raw = (os.getenv(key) or "").strip()
    return raw or default


def _env_value(key: str, default: T, parse: Callable[[str], T]) -> T:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    return _env_value(key, default, lambda raw: raw.lower() in _TRUTHY)


@dataclass(frozen=True)
class Settings:
    # Storage
    db_path: str
    uploads_dir: str
    uploads_base_url: str

    # Logging
    log_level: str
    log_json: bool

    # Geocoder (Nominatim allows ~1 request/second)
    geocoder_url: str
    geocoder_user_agent: str
    geocoder_min_interval_seconds: float
    geocoder_timeout_seconds: float

    # Map markers (pixels)
    marker_min_radius: float
    marker_max_radius: float

    @staticmethod
    def from_env(env_file: Optional[str] = ".env") -> "Settings":
        # Process environment wins over values from env_file.
        if env_file:
            load_dotenv(dotenv_path=env_file, override=False)

        db_path = _env_str("APP_DB_PATH", "data/party_profiles.db")
        uploads_dir = _env_str("APP_UPLOADS_DIR", "data/uploads")

        # The database file itself is created by the repository.
        Path(uploads_dir).mkdir(parents=True, exist_ok=True)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        return Settings(
            db_path=db_path,
            uploads_dir=uploads_dir,
            uploads_base_url=_env_str("APP_UPLOADS_BASE_URL", "/uploads"),

            log_level=_env_str("APP_LOG_LEVEL", "INFO"),
            log_json=_env_bool("APP_LOG_JSON", True),

            geocoder_url=_env_str("APP_GEOCODER_URL", "https://nominatim.openstreetmap.org/search"),
            geocoder_user_agent=_env_str("APP_GEOCODER_USER_AGENT", "PartyApp/1.0"),
            geocoder_min_interval_seconds=_env_value("APP_GEOCODER_MIN_INTERVAL_SECONDS", 1.0, float),
            geocoder_timeout_seconds=_env_value("APP_GEOCODER_TIMEOUT_SECONDS", 10.0, float),

            marker_min_radius=_env_value("APP_MARKER_MIN_RADIUS", 5.0, float),
            marker_max_radius=_env_value("APP_MARKER_MAX_RADIUS", 25.0, float),
        )

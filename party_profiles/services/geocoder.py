from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from party_profiles.app.config import Settings
from party_profiles.app.errors import GeocodingError
from party_profiles.app.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float
    resolved_name: Optional[str] = None


class NominatimGeocoder:
    """
    Place name -> coordinates via an OpenStreetMap Nominatim endpoint.

    Requests are serialized and spaced at least ``min_interval_seconds`` apart
    (Nominatim's usage policy is one request per second). ``geocode`` returns
    None when the service has no match and raises ``GeocodingError`` when the
    service cannot be reached or answers with an error.
    """

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org/search",
        user_agent: str = "PartyApp/1.0",
        min_interval_seconds: float = 1.0,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self.min_interval_seconds = min_interval_seconds
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request_at: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "NominatimGeocoder":
        return cls(
            base_url=settings.geocoder_url,
            user_agent=settings.geocoder_user_agent,
            min_interval_seconds=settings.geocoder_min_interval_seconds,
            timeout_seconds=settings.geocoder_timeout_seconds,
        )

    def geocode(self, place: str) -> Optional[GeoPoint]:
        query = (place or "").strip()
        if not query:
            return None

        with self._lock:
            self._wait_for_slot()
            try:
                resp = self.session.get(
                    self.base_url,
                    params={"q": query, "format": "json", "limit": "1"},
                    headers={"User-Agent": self.user_agent},
                    timeout=self.timeout_seconds,
                )
                resp.raise_for_status()
                data = resp.json()
            except requests.RequestException as e:
                raise GeocodingError(f"Geocoding request for {query!r} failed: {e}") from e
            except ValueError as e:
                raise GeocodingError(f"Geocoder returned invalid JSON for {query!r}") from e
            finally:
                self._last_request_at = self._clock()

        return self._parse(data, query)

    def _wait_for_slot(self) -> None:
        if self._last_request_at is None:
            return
        elapsed = self._clock() - self._last_request_at
        remaining = self.min_interval_seconds - elapsed
        if remaining > 0:
            self._sleep(remaining)

    def _parse(self, data: Any, query: str) -> Optional[GeoPoint]:
        if not isinstance(data, list) or not data:
            logger.info("no geocoding match", extra={"place": query})
            return None
        first = data[0]
        try:
            return GeoPoint(
                lat=float(first["lat"]),
                lng=float(first["lon"]),
                resolved_name=first.get("display_name"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError(f"Unexpected geocoder payload for {query!r}") from e

# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class LocationFix:
    # Geocoded place for a location-bearing answer; coordinates stay None when geocoding failed.
    place: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    resolved_name: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_dict(self) -> Dict[str, Any]:
        return {"place": self.place, "lat": self.lat, "lng": self.lng, "resolved_name": self.resolved_name}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "LocationFix":
        return LocationFix(
            place=str(d.get("place") or ""),
            lat=_as_float(d.get("lat")),
            lng=_as_float(d.get("lng")),
            resolved_name=d.get("resolved_name"),
        )


def _as_float(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RespondentProfile:
    party_id: str
    respondent_id: str
    display_name: Optional[str] = None
    whatsapp_number: Optional[str] = None
    answers: Dict[str, Any] = field(default_factory=dict)
    batch_progress: Dict[str, str] = field(default_factory=dict)
    locations: Dict[str, LocationFix] = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def location_for(self, question_id: str) -> Optional[LocationFix]:
        return self.locations.get(question_id)

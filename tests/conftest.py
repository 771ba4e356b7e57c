from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from party_profiles.app.errors import GeocodingError
from party_profiles.db.models import LocationFix, RespondentProfile
from party_profiles.db.repository import SQLiteProfileRepository
from party_profiles.questionnaire.catalog import DEFAULT_CATALOG
from party_profiles.services.file_store import LocalFileStore
from party_profiles.services.geocoder import GeoPoint

PARTY = "party-1"


class FakeGeocoder:
    # Dictionary-backed geocoder; places listed in `failing` raise like a dead service.
    def __init__(self, points: Optional[Dict[str, GeoPoint]] = None, failing: Optional[set] = None):
        self.points = points or {}
        self.failing = failing or set()
        self.calls: List[str] = []

    def geocode(self, place: str) -> Optional[GeoPoint]:
        self.calls.append(place)
        if place in self.failing:
            raise GeocodingError(f"service unavailable for {place}")
        return self.points.get(place)


@pytest.fixture
def catalog():
    return DEFAULT_CATALOG


@pytest.fixture
def repo(tmp_path):
    return SQLiteProfileRepository(str(tmp_path / "profiles.db"))


@pytest.fixture
def geocoder():
    return FakeGeocoder(
        points={
            "Lahore": GeoPoint(31.5204, 74.3587, "Lahore, Punjab, Pakistan"),
            "Karachi": GeoPoint(24.8607, 67.0011, "Karachi, Sindh, Pakistan"),
            "Istanbul": GeoPoint(41.0082, 28.9784, "Istanbul, Türkiye"),
        },
        failing={"Atlantis"},
    )


@pytest.fixture
def file_store(tmp_path):
    return LocalFileStore(str(tmp_path / "uploads"), base_url="/uploads")


def make_profile(respondent_id: str, answers: Dict, display_name: Optional[str] = None,
                 batch_progress: Optional[Dict[str, str]] = None,
                 locations: Optional[Dict[str, LocationFix]] = None) -> RespondentProfile:
    return RespondentProfile(
        party_id=PARTY,
        respondent_id=respondent_id,
        display_name=display_name or respondent_id.title(),
        answers=answers,
        batch_progress=batch_progress or {},
        locations=locations or {},
    )


BATCH_1_COMPLETE = {
    "birth_city": "Lahore",
    "food_pulao_biryani": ["A"],
    "food_nihari_haleem": ["B"],
    "food_mango_chaunsa_anwar": ["A", "B"],
    "drink_roohafza_jameshirin": ["NEITHER"],
    "games_carrom_ludo": ["A"],
    "music_vitalsigns_junoon": ["B"],
    "qawwali_nusrat_sabri": ["BOTH"],
}

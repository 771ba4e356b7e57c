import pytest

from party_profiles.db.models import LocationFix
from party_profiles.db.repository import SQLiteProfileRepository

from conftest import PARTY


def test_get_missing_profile_returns_none(repo):
    assert repo.get(PARTY, "nobody") is None


def test_upsert_creates_then_merges_top_level(repo):
    created = repo.upsert(PARTY, "r1", display_name="Ali", answers={"birth_city": "Lahore"})
    assert created.display_name == "Ali"
    assert created.answers == {"birth_city": "Lahore"}
    assert created.batch_progress == {}
    assert created.created_at is not None

    updated = repo.upsert(PARTY, "r1", batch_progress={"batch_1": "in_progress"})
    # fields not passed are left alone
    assert updated.display_name == "Ali"
    assert updated.answers == {"birth_city": "Lahore"}
    assert updated.batch_progress == {"batch_1": "in_progress"}
    assert updated.created_at == created.created_at


def test_json_fields_are_replaced_wholesale(repo):
    repo.upsert(PARTY, "r1", answers={"a": "1", "b": "2"})
    profile = repo.upsert(PARTY, "r1", answers={"c": "3"})
    assert profile.answers == {"c": "3"}


def test_unknown_field_rejected(repo):
    with pytest.raises(ValueError):
        repo.upsert(PARTY, "r1", favourite_colour="blue")


def test_locations_round_trip(repo):
    fix = LocationFix(place="Istanbul", lat=41.0, lng=28.9, resolved_name="Istanbul, Türkiye")
    repo.upsert(PARTY, "r1", locations={"fav_city_travel": fix})
    loaded = repo.get(PARTY, "r1")
    assert loaded.location_for("fav_city_travel") == fix


def test_profiles_are_scoped_by_party(repo):
    repo.upsert(PARTY, "r1", display_name="Ali")
    repo.upsert(PARTY, "r2", display_name="Sana")
    repo.upsert("other-party", "r1", display_name="Someone else")
    assert [p.respondent_id for p in repo.list_profiles(PARTY)] == ["r1", "r2"]
    assert repo.get("other-party", "r1").display_name == "Someone else"


def test_list_missing_locations(repo):
    repo.upsert(PARTY, "r1", answers={"fav_city_travel": "Paris"},
                locations={"fav_city_travel": LocationFix(place="Paris")})
    repo.upsert(PARTY, "r2", answers={"fav_city_travel": "Rome"},
                locations={"fav_city_travel": LocationFix(place="Rome", lat=41.9, lng=12.5)})
    repo.upsert("other-party", "r3", answers={"fav_city_travel": "Oslo"})

    assert [p.respondent_id for p in repo.list_missing_locations("fav_city_travel", party_id=PARTY)] == ["r1"]
    assert {p.respondent_id for p in repo.list_missing_locations("fav_city_travel")} == {"r1", "r3"}


def test_schema_init_is_idempotent(tmp_path):
    path = str(tmp_path / "p.db")
    SQLiteProfileRepository(path).upsert(PARTY, "r1", display_name="Ali")
    again = SQLiteProfileRepository(path)
    assert again.get(PARTY, "r1").display_name == "Ali"

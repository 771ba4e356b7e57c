import csv
import io

from party_profiles.tools.export import IDENTITY_COLUMNS, export_columns, export_csv, profiles_dataframe

from conftest import make_profile


def _parse(text):
    return list(csv.reader(io.StringIO(text)))


def test_columns_identity_questions_then_statuses(catalog):
    cols = export_columns(catalog)
    assert cols[:2] == IDENTITY_COLUMNS
    assert cols[2] == "birth_city"
    assert cols[-3:] == ["status_batch_1", "status_batch_2", "status_batch_3"]
    assert len(cols) == 2 + len(catalog.get_all_questions()) + 3


def test_quotes_and_commas_round_trip(catalog):
    profiles = [
        make_profile("r1", {"fav_english_band": 'He said, "hi"'}, display_name="Ali, Jr."),
        make_profile("r2", {"fav_english_band": 'He said, "hi"'}),
    ]
    text = export_csv(profiles, catalog)
    rows = _parse(text)
    assert len(rows) == 3
    header = rows[0]
    for row in rows[1:]:
        record = dict(zip(header, row))
        assert record["fav_english_band"] == 'He said, "hi"'
    assert dict(zip(header, rows[1]))["display_name"] == "Ali, Jr."
    assert '"He said, ""hi"""' in text


def test_every_cell_is_quoted(catalog):
    text = export_csv([make_profile("r1", {})], catalog)
    header_line = text.splitlines()[0]
    assert header_line.startswith('"respondent_id","display_name",')


def test_labels_resolved_and_statuses_filled(catalog):
    profiles = [
        make_profile(
            "r1",
            {
                "food_pulao_biryani": "A,B",
                "tv_4way_classics": {"type": "option", "id": "B"},
                "fav_actor_90s": {"type": "free_text", "id": "X", "text": "Govinda"},
                "zodiac_sign": "Leo",
            },
            batch_progress={"batch_1": "complete", "batch_2": "in_progress"},
        ),
    ]
    df = profiles_dataframe(profiles, catalog)
    row = df.iloc[0]
    assert row["food_pulao_biryani"] == "Pulao & Biryani"
    assert row["tv_4way_classics"] == "Sunehray Din"
    assert row["fav_actor_90s"] == "Govinda"
    assert row["zodiac_sign"] == "Leo"
    assert row["birth_city"] == ""
    assert row["status_batch_1"] == "complete"
    assert row["status_batch_2"] == "in_progress"
    assert row["status_batch_3"] == "not_started"


def test_one_row_per_respondent(catalog):
    profiles = [make_profile("r1", {}), make_profile("r2", {"birth_city": "Karachi"})]
    rows = _parse(export_csv(profiles, catalog))
    assert len(rows) == 3
    assert [r[0] for r in rows[1:]] == ["r1", "r2"]


def test_empty_export_still_has_header(catalog):
    rows = _parse(export_csv([], catalog))
    assert rows == [export_columns(catalog)]

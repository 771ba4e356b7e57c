from party_profiles.tools.summaries import summarize_party, summarize_respondent

from conftest import make_profile


def _profile():
    return make_profile(
        "r1",
        {
            "birth_city": "Lahore",
            "food_pulao_biryani": "NEITHER",
            "fav_actor_90s": {"type": "option", "id": "C"},
            "culture_marriage_love_arranged": "A",
            "fav_english_band": "",
        },
        display_name="Hina",
        batch_progress={"batch_1": "complete"},
    )


def test_summary_resolves_labels_and_progress(catalog):
    s = summarize_respondent(_profile(), catalog)
    assert s.display_name == "Hina"
    assert s.completion_percentage == 33
    assert s.batch_statuses["batch_1"] == "complete"
    assert s.batch_statuses["batch_3"] == "not_started"
    assert s.answers["birth_city"] == "Lahore"
    assert s.answers["food_pulao_biryani"] == "Neither"
    assert "fav_english_band" not in s.answers


def test_aggregate_only_answers_hidden_by_default(catalog):
    s = summarize_respondent(_profile(), catalog)
    assert "fav_actor_90s" not in s.answers
    assert "culture_marriage_love_arranged" not in s.answers
    assert s.hidden_question_ids == ["fav_actor_90s", "culture_marriage_love_arranged"]


def test_include_private_reveals_everything(catalog):
    s = summarize_respondent(_profile(), catalog, include_private=True)
    assert s.answers["fav_actor_90s"] == "Salman"
    assert s.answers["culture_marriage_love_arranged"] == "Love marriage"
    assert s.hidden_question_ids == []


def test_party_summaries_sorted_by_name(catalog):
    profiles = [
        make_profile("r1", {}, display_name="zara"),
        make_profile("r2", {}, display_name="Ahmed"),
        make_profile("r3", {}, display_name="bilal"),
    ]
    names = [s.display_name for s in summarize_party(profiles, catalog)]
    assert names == ["Ahmed", "bilal", "zara"]


def test_to_dict(catalog):
    payload = summarize_respondent(_profile(), catalog).to_dict()
    assert payload["respondent_id"] == "r1"
    assert isinstance(payload["answers"], dict)

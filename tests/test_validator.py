from party_profiles.questionnaire.validator import validate_basic_info, validate_batch

from conftest import BATCH_1_COMPLETE


def test_empty_batch_1_reports_every_required_question(catalog):
    result = validate_batch("batch_1", {})
    required = [q.id for q in catalog.get_batch("batch_1").required_questions()]
    assert not result.valid
    assert result.missing_question_ids == required
    assert result.message == f"Please answer all required questions ({len(required)} remaining)"


def test_complete_batch_is_valid():
    answers = {qid: "A" for qid in BATCH_1_COMPLETE}
    answers["birth_city"] = "Lahore"
    result = validate_batch("batch_1", answers)
    assert result.valid
    assert result.missing_question_ids == []


def test_empty_string_and_none_count_as_missing():
    answers = {qid: "A" for qid in BATCH_1_COMPLETE}
    answers["birth_city"] = ""
    answers["games_carrom_ludo"] = None
    result = validate_batch("batch_1", answers)
    assert result.missing_question_ids == ["birth_city", "games_carrom_ludo"]
    assert "(2 remaining)" in result.message


def test_optional_questions_do_not_block():
    # batch_3 has no required questions
    assert validate_batch("batch_3", {}).valid
    result = validate_batch("batch_2", {"fav_english_band": "Coldplay"})
    assert result.missing_question_ids == ["tv_4way_classics"]


def test_answers_from_other_batches_are_ignored():
    result = validate_batch("batch_2", {"birth_city": "Lahore", "tv_4way_classics": {"type": "option", "id": "A"}})
    assert result.valid


def test_unknown_batch():
    result = validate_batch("batch_9", {"x": "y"})
    assert not result.valid
    assert result.missing_question_ids == []
    assert result.message == "Batch not found"


def test_basic_info():
    assert validate_basic_info("Ayesha").valid
    blank = validate_basic_info("   ")
    assert not blank.valid
    assert blank.missing_question_ids == ["display_name"]
    assert not validate_basic_info(None).valid


def test_stored_empty_write_in_counts_as_missing():
    answers = {
        "tv_4way_classics": {"type": "free_text", "id": "X", "text": ""},
        "fav_english_band": "Coldplay",
    }
    # tv_4way_classics has no write-in option, but an empty free_text value is unanswered either way
    assert validate_batch("batch_2", answers).missing_question_ids == ["tv_4way_classics"]


def test_blank_either_or_counts_as_missing():
    answers = {qid: "A" for qid in BATCH_1_COMPLETE}
    answers["birth_city"] = "Lahore"
    answers["food_nihari_haleem"] = " , "
    assert validate_batch("batch_1", answers).missing_question_ids == ["food_nihari_haleem"]

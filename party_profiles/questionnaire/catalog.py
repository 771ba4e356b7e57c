"""
About You question catalog.

The batches below are fixed configuration: three batches unlocked in order.
``QuestionCatalog`` is the read-only lookup layer over them; ``build_catalog``
turns the plain-dict definition into frozen models and rejects inconsistent
definitions.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from party_profiles.app.errors import CatalogError

from .models import Batch, CHOICE_KINDS, Option, Question, QuestionFlags, QuestionKind


def _either_or(qid: str, order: int, prompt: str, a: str, b: str, **extra: Any) -> Dict[str, Any]:
    return {
        "id": qid,
        "order": order,
        "kind": "either_or",
        "prompt": prompt,
        "options": [{"id": "A", "label": a}, {"id": "B", "label": b}],
        **extra,
    }


_FAVORITE_FLAGS = {"allow_both": True, "allow_neither": True}
_PERSONALITY_FLAGS = {"allow_both": False, "allow_neither": True}

ZODIAC_SIGNS = [
    "Aries", "Taurus", "Gemini", "Cancer", "Leo", "Virgo",
    "Libra", "Scorpio", "Sagittarius", "Capricorn", "Aquarius", "Pisces",
]

QUESTION_BATCHES: List[Dict[str, Any]] = [
    {
        "id": "batch_1",
        "title": "Fun Favorites",
        "description": "Quick questions about Pakistani food, music, and culture",
        "emoji": "🎉",
        "estimated_time": "2 min",
        "questions": [
            {
                "id": "birth_city",
                "order": 0,
                "kind": "short_text",
                "prompt": "Which city were you born in?",
                "placeholder": "e.g., Lahore, Karachi, Toronto",
                "required": True,
                "location": True,
                "category": "origins",
            },
            _either_or("food_pulao_biryani", 1, "Pulao vs Biryani", "Pulao", "Biryani",
                       required=True, flags=_FAVORITE_FLAGS, category="food"),
            _either_or("food_nihari_haleem", 2, "Nihari vs Haleem", "Nihari", "Haleem",
                       required=True, flags=_FAVORITE_FLAGS, category="food"),
            _either_or("food_mango_chaunsa_anwar", 3, "Mango: Chaunsa vs Anwar Ratol", "Chaunsa", "Anwar Ratol",
                       required=True, flags=_FAVORITE_FLAGS, category="food"),
            _either_or("drink_roohafza_jameshirin", 4, "Rooh Afza vs Jam-e-Shirin", "Rooh Afza", "Jam-e-Shirin",
                       required=True, flags=_FAVORITE_FLAGS, category="drink"),
            _either_or("games_carrom_ludo", 5, "Carrom vs Ludo", "Carrom", "Ludo",
                       required=True, flags=_FAVORITE_FLAGS, category="nostalgia"),
            _either_or("music_vitalsigns_junoon", 6, "Vital Signs vs Junoon", "Vital Signs", "Junoon",
                       required=True, flags=_FAVORITE_FLAGS, category="music"),
            _either_or("qawwali_nusrat_sabri", 7, "Nusrat Fateh Ali Khan vs Sabri Brothers",
                       "Nusrat Fateh Ali Khan", "Sabri Brothers",
                       required=True, flags=_FAVORITE_FLAGS, category="music"),
        ],
    },
    {
        "id": "batch_2",
        "title": "Know Yourself",
        "description": "Personality traits and preferences",
        "emoji": "🧠",
        "estimated_time": "2 min",
        "questions": [
            {
                "id": "tv_4way_classics",
                "order": 8,
                "kind": "single_choice",
                "prompt": "Pick your favorite Pakistani TV classic",
                "options": [
                    {"id": "A", "label": "Alpha Bravo Charlie"},
                    {"id": "B", "label": "Sunehray Din"},
                    {"id": "C", "label": "Dhoop Kinare"},
                    {"id": "D", "label": "Tanhaiyaan"},
                ],
                "required": True,
                "category": "nostalgia",
            },
            _either_or("mbti_travel_plan_wander", 13, "When traveling, do you prefer...",
                       "Planned itinerary", "Wander and discover",
                       flags=_PERSONALITY_FLAGS, category="personality"),
            _either_or("mbti_day_plan_options", 14, "For your day, you prefer...",
                       "A clear plan & checklist", "Keeping options open",
                       flags=_PERSONALITY_FLAGS, category="personality"),
            _either_or("mbti_problem_old_new", 15, "When solving a problem, you lean toward...",
                       "What's worked before", "Try a new approach",
                       flags=_PERSONALITY_FLAGS, category="personality"),
            _either_or("mbti_decisions_head_heart", 16, "In decisions, you value...",
                       "Head/logic first", "Heart/people first",
                       flags=_PERSONALITY_FLAGS, category="personality"),
            _either_or("mbti_party_social", 17, "At a party, you usually...",
                       "Meet many new people", "Stick with a small circle",
                       flags={"allow_both": False, "allow_neither": True, "allow_dont_know": True},
                       category="personality"),
            {
                "id": "zodiac_sign",
                "order": 21,
                "kind": "dropdown",
                "prompt": "What's your star sign?",
                "placeholder": "Select your sign...",
                "options": [{"id": sign.lower(), "label": sign} for sign in ZODIAC_SIGNS]
                + [{"id": "not_sure", "label": "Not sure"}],
                "ordered": True,
                "category": "personality",
            },
            {
                "id": "chai_order",
                "order": 22,
                "kind": "dropdown",
                "prompt": "How do you take your chai?",
                "placeholder": "Select an option...",
                "options": [
                    {"id": "doodh_patti", "label": "Doodh patti"},
                    {"id": "kashmiri", "label": "Kashmiri"},
                    {"id": "karak", "label": "Karak"},
                    {"id": "green_tea", "label": "Green tea"},
                    {"id": "no_chai", "label": "No chai for me"},
                ],
                "category": "drink",
            },
            {
                "id": "fav_english_band",
                "order": 9,
                "kind": "short_text",
                "prompt": "Favorite English band or artist",
                "placeholder": "e.g., U2, Coldplay, The Beatles",
                "category": "music",
            },
        ],
    },
    {
        "id": "batch_3",
        "title": "Deeper Reflections",
        "description": "Values, travel, and personal preferences",
        "emoji": "💭",
        "estimated_time": "2 min",
        "questions": [
            {
                "id": "fav_city_travel",
                "order": 12,
                "kind": "short_text",
                "prompt": "Favorite city for travel",
                "placeholder": "e.g., Istanbul, Paris, Tokyo",
                "location": True,
                "category": "travel",
            },
            {
                "id": "fav_actor_90s",
                "order": 10,
                "kind": "single_choice",
                "prompt": "'90s crush (actor)",
                "options": [
                    {"id": "A", "label": "Amitabh"},
                    {"id": "B", "label": "Shah Rukh"},
                    {"id": "C", "label": "Salman"},
                    {"id": "D", "label": "Aamir"},
                    {"id": "E", "label": "Hrithik"},
                    {"id": "X", "label": "Other", "write_in": True},
                ],
                "aggregate_only": True,
                "category": "film",
            },
            {
                "id": "fav_actress_90s",
                "order": 11,
                "kind": "single_choice",
                "prompt": "'90s crush (actress)",
                "options": [
                    {"id": "A", "label": "Raveena"},
                    {"id": "B", "label": "Karisma"},
                    {"id": "C", "label": "Kajol"},
                    {"id": "D", "label": "Kareena"},
                    {"id": "E", "label": "Preity"},
                    {"id": "X", "label": "Other", "write_in": True},
                ],
                "aggregate_only": True,
                "category": "film",
            },
            _either_or("gift_love_notes_surprise", 18, "Prefer giving...", "Love notes", "Surprise gifts",
                       flags=_FAVORITE_FLAGS, category="values"),
            _either_or("civic_charity_vs_volunteer", 19, "Prefer to...", "Give Charity", "Volunteer Time",
                       flags=_FAVORITE_FLAGS, category="values"),
            _either_or("culture_marriage_love_arranged", 20, "Your view on marriage...",
                       "Love marriage", "Arranged marriage",
                       flags=_FAVORITE_FLAGS, sensitive=True, aggregate_only=True, category="culture",
                       help_text="🔒 Your answer is completely private"),
            {
                "id": "baby_photo",
                "order": 23,
                "kind": "photo_upload",
                "prompt": "Share a baby photo for the guessing game",
                "help_text": "Only the host sees who uploaded which photo",
                "category": "photos",
            },
        ],
    },
]


def _build_question(raw: Mapping[str, Any]) -> Question:
    try:
        kind = QuestionKind(raw["kind"])
    except (KeyError, ValueError) as e:
        raise CatalogError(f"Question {raw.get('id')!r} has an unknown kind: {raw.get('kind')!r}") from e

    options = tuple(
        Option(id=str(o["id"]), label=str(o["label"]), write_in=bool(o.get("write_in", False)))
        for o in raw.get("options") or []
    )
    flags = QuestionFlags(**(raw.get("flags") or {}))

    q = Question(
        id=str(raw["id"]),
        kind=kind,
        prompt=str(raw.get("prompt", "")),
        required=bool(raw.get("required", False)),
        options=options,
        flags=flags,
        order=int(raw.get("order", 0)),
        category=raw.get("category"),
        placeholder=str(raw.get("placeholder", "")),
        help_text=raw.get("help_text"),
        max_length=int(raw.get("max_length", 100)),
        write_in_max_length=int(raw.get("write_in_max_length", 50)),
        sensitive=bool(raw.get("sensitive", False)),
        aggregate_only=bool(raw.get("aggregate_only", False)),
        location=bool(raw.get("location", False)),
        ordered=bool(raw.get("ordered", False)),
    )
    _check_question(q)
    return q


def _check_question(q: Question) -> None:
    if q.kind in CHOICE_KINDS and not q.options:
        raise CatalogError(f"Question {q.id!r} ({q.kind.value}) needs options.")
    if q.kind == QuestionKind.EITHER_OR and len(q.options) != 2:
        raise CatalogError(f"Question {q.id!r} is either_or and must have exactly two options.")
    ids = q.option_ids()
    if len(set(ids)) != len(ids):
        raise CatalogError(f"Question {q.id!r} has duplicate option ids.")
    if q.location and q.kind != QuestionKind.SHORT_TEXT:
        raise CatalogError(f"Question {q.id!r}: only short_text questions can be location-bearing.")


class QuestionCatalog:
    """
    Read-only lookup over an ordered list of batches.

    Batch order is priority order; question ids share one namespace across all
    batches because answers are merged into a single flat map per respondent.
    """

    def __init__(self, batches: Sequence[Batch]):
        self._batches: Tuple[Batch, ...] = tuple(batches)
        self._batch_index: Dict[str, int] = {}
        self._questions: Dict[str, Question] = {}
        self._question_batch: Dict[str, str] = {}

        for idx, batch in enumerate(self._batches):
            if batch.id in self._batch_index:
                raise CatalogError(f"Duplicate batch id: {batch.id!r}")
            self._batch_index[batch.id] = idx
            for q in batch.questions:
                if q.id in self._questions:
                    raise CatalogError(f"Duplicate question id: {q.id!r}")
                self._questions[q.id] = q
                self._question_batch[q.id] = batch.id

    @property
    def batches(self) -> Tuple[Batch, ...]:
        return self._batches

    def __len__(self) -> int:
        return len(self._batches)

    def batch_ids(self) -> List[str]:
        return [b.id for b in self._batches]

    def get_batch(self, batch_id: str) -> Optional[Batch]:
        idx = self._batch_index.get(batch_id)
        return self._batches[idx] if idx is not None else None

    def batch_index(self, batch_id: str) -> Optional[int]:
        return self._batch_index.get(batch_id)

    def get_all_questions(self) -> List[Question]:
        return [q for b in self._batches for q in b.questions]

    def get_question(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    def batch_of(self, question_id: str) -> Optional[str]:
        return self._question_batch.get(question_id)

    def location_questions(self) -> List[Question]:
        return [q for q in self.get_all_questions() if q.location]


def build_catalog(definition: Iterable[Mapping[str, Any]]) -> QuestionCatalog:
    batches = []
    for raw in definition:
        questions = tuple(_build_question(q) for q in raw.get("questions") or [])
        batches.append(
            Batch(
                id=str(raw["id"]),
                title=str(raw.get("title", raw["id"])),
                questions=questions,
                description=str(raw.get("description", "")),
                emoji=str(raw.get("emoji", "")),
                estimated_time=str(raw.get("estimated_time", "")),
            )
        )
    return QuestionCatalog(batches)


DEFAULT_CATALOG = build_catalog(QUESTION_BATCHES)

"""
Cross-respondent aggregation for the host's results view.

``aggregate_party`` walks the whole catalog and produces one
``QuestionAggregate`` per question:

- choice kinds -> frequency table (label, count, pct), sorted by count with
  ties kept in first-seen order; ordered dropdowns keep catalog order and drop
  empty categories.
- short_text -> verbatim list; location-bearing questions add map clusters.
- photo_upload -> list of stored photo references.

A question nobody answered gets ``status == "no_responses"`` so it can be
told apart from a 100% single-option result. The computation is pure: the
same profiles always give the same output.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from party_profiles.app.config import Settings
from party_profiles.db.models import RespondentProfile
from party_profiles.questionnaire.answers import Answer
from party_profiles.questionnaire.catalog import DEFAULT_CATALOG, QuestionCatalog
from party_profiles.questionnaire.codec import TallyKey, codec_for, load_answer
from party_profiles.questionnaire.models import Question, QuestionKind

STATUS_NO_RESPONSES = "no_responses"
STATUS_OK = "ok"

DEFAULT_MIN_RADIUS = 5.0
DEFAULT_MAX_RADIUS = 25.0


@dataclass(frozen=True)
class FrequencyRow:
    label: str
    count: int
    pct: int
    write_in: bool = False


@dataclass(frozen=True)
class GeoCluster:
    place: str
    lat: float
    lng: float
    count: int
    respondent_names: Tuple[str, ...]
    radius: float


@dataclass(frozen=True)
class QuestionAggregate:
    question_id: str
    kind: str
    prompt: str
    batch_id: Optional[str]
    status: str
    response_count: int
    frequencies: List[FrequencyRow] = field(default_factory=list)
    verbatims: List[str] = field(default_factory=list)
    geo: List[GeoCluster] = field(default_factory=list)
    photos: List[str] = field(default_factory=list)
    sensitive: bool = False
    aggregate_only: bool = False

    @property
    def has_responses(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PartyAggregate:
    party_id: Optional[str]
    respondent_count: int
    questions: List[QuestionAggregate]

    def get(self, question_id: str) -> Optional[QuestionAggregate]:
        for q in self.questions:
            if q.question_id == question_id:
                return q
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "party_id": self.party_id,
            "respondent_count": self.respondent_count,
            "questions": [q.to_dict() for q in self.questions],
        }


@dataclass(frozen=True)
class _Collected:
    question: Question
    batch_id: Optional[str]
    entries: List[Tuple[RespondentProfile, Answer]]


# -------------------------
# Numeric helpers
# -------------------------
def rounded_percentages(counts: Sequence[int]) -> List[int]:
    """
    Integer percentages that sum to exactly 100 (largest remainder method).

    Leftover points go to the largest fractional parts; ties go to the earlier row.
    """
    arr = np.asarray(counts, dtype=float)
    total = arr.sum()
    if total <= 0:
        return [0] * len(arr)

    raw = arr * 100.0 / total
    floors = np.floor(raw).astype(int)
    shortfall = int(100 - floors.sum())
    if shortfall > 0:
        order = np.argsort(-(raw - floors), kind="stable")
        floors[order[:shortfall]] += 1
    return [int(x) for x in floors]


def marker_radius(count: int, max_count: int, min_radius: float = DEFAULT_MIN_RADIUS,
                  max_radius: float = DEFAULT_MAX_RADIUS) -> float:
    # Linear between min and max pixel size by count / max_count; monotonic in count.
    if max_count <= 0:
        return min_radius
    return min_radius + (count / max_count) * (max_radius - min_radius)


def frequency_table(entries: Sequence[TallyKey]) -> List[FrequencyRow]:
    """
    Tally (bucket key, label, write_in) entries.

    The label of a bucket is the first one seen. Rows are sorted by count
    descending; equal counts keep first-seen order.
    """
    if not entries:
        return []
    grouped = _group_entries(entries)
    grouped = grouped.sort_values("count", ascending=False, kind="stable")
    return _rows_from_frame(grouped)


def _group_entries(entries: Sequence[TallyKey]) -> pd.DataFrame:
    df = pd.DataFrame(
        [("\x1f".join(key), label, bool(write_in)) for key, label, write_in in entries],
        columns=["key", "label", "write_in"],
    )
    # sort=False keeps groups in order of first appearance.
    return (
        df.groupby("key", sort=False)
        .agg(label=("label", "first"), write_in=("write_in", "first"), count=("label", "size"))
        .reset_index()
    )


def _rows_from_frame(frame: pd.DataFrame) -> List[FrequencyRow]:
    counts = [int(c) for c in frame["count"].tolist()]
    pcts = rounded_percentages(counts)
    return [
        FrequencyRow(label=str(label), count=count, pct=pct, write_in=bool(write_in))
        for label, write_in, count, pct in zip(frame["label"].tolist(), frame["write_in"].tolist(), counts, pcts)
    ]


# -------------------------
# Per-kind aggregation
# -------------------------
def _tally(collected: _Collected) -> List[TallyKey]:
    codec = codec_for(collected.question.kind)
    out: List[TallyKey] = []
    for _, answer in collected.entries:
        out.extend(codec.tally_keys(answer, collected.question))
    return out


def _aggregate_choice(collected: _Collected, **_: Any) -> Dict[str, Any]:
    # either_or and single_choice: labels resolved through the catalog by the codec.
    return {"frequencies": frequency_table(_tally(collected))}


def _aggregate_dropdown(collected: _Collected, **_: Any) -> Dict[str, Any]:
    question = collected.question
    entries = _tally(collected)
    grouped = _group_entries(entries)

    catalog_labels = {opt.label.casefold(): opt.label for opt in question.options}
    grouped["label"] = [
        catalog_labels.get(str(lbl).casefold(), lbl) for lbl in grouped["label"].tolist()
    ]

    if not question.ordered:
        grouped = grouped.sort_values("count", ascending=False, kind="stable")
        return {"frequencies": _rows_from_frame(grouped)}

    # Fixed enumeration: catalog order, empty categories omitted, stray values last.
    grouped["folded"] = [str(lbl).casefold() for lbl in grouped["label"].tolist()]
    position = {opt.label.casefold(): idx for idx, opt in enumerate(question.options)}
    grouped["position"] = [position.get(f, len(position)) for f in grouped["folded"].tolist()]
    in_catalog = grouped[grouped["position"] < len(position)].sort_values("position", kind="stable")
    strays = grouped[grouped["position"] >= len(position)].sort_values("count", ascending=False, kind="stable")
    return {"frequencies": _rows_from_frame(pd.concat([in_catalog, strays], ignore_index=True))}


def _aggregate_short_text(
    collected: _Collected,
    min_radius: float = DEFAULT_MIN_RADIUS,
    max_radius: float = DEFAULT_MAX_RADIUS,
    **_: Any,
) -> Dict[str, Any]:
    verbatims = [answer.text for _, answer in collected.entries]
    out: Dict[str, Any] = {"verbatims": verbatims}
    if collected.question.location:
        out["geo"] = geo_clusters(collected.question.id, [p for p, _ in collected.entries],
                                  min_radius=min_radius, max_radius=max_radius)
    return out


def _aggregate_photo(collected: _Collected, **_: Any) -> Dict[str, Any]:
    return {"photos": [answer.url for _, answer in collected.entries]}


_AGGREGATORS: Dict[QuestionKind, Callable[..., Dict[str, Any]]] = {
    QuestionKind.EITHER_OR: _aggregate_choice,
    QuestionKind.SINGLE_CHOICE: _aggregate_choice,
    QuestionKind.DROPDOWN: _aggregate_dropdown,
    QuestionKind.SHORT_TEXT: _aggregate_short_text,
    QuestionKind.PHOTO_UPLOAD: _aggregate_photo,
}

_missing = set(QuestionKind) - set(_AGGREGATORS)
if _missing:
    raise RuntimeError(f"No aggregator registered for: {sorted(k.value for k in _missing)}")


def geo_clusters(
    question_id: str,
    profiles: Sequence[RespondentProfile],
    min_radius: float = DEFAULT_MIN_RADIUS,
    max_radius: float = DEFAULT_MAX_RADIUS,
) -> List[GeoCluster]:
    """
    Group respondents by the exact (place, lat, lng) of their geocoded answer.

    Respondents without coordinates are left off the map.
    """
    rows = []
    for p in profiles:
        fix = p.location_for(question_id)
        if fix is None or not fix.has_coordinates:
            continue
        rows.append((fix.place, fix.lat, fix.lng, p.display_name or p.respondent_id))
    if not rows:
        return []

    df = pd.DataFrame(rows, columns=["place", "lat", "lng", "name"])
    grouped = (
        df.groupby(["place", "lat", "lng"], sort=False)
        .agg(respondents=("name", "size"), names=("name", list))
        .reset_index()
        .sort_values("respondents", ascending=False, kind="stable")
    )
    max_count = int(grouped["respondents"].max())
    return [
        GeoCluster(
            place=str(r.place),
            lat=float(r.lat),
            lng=float(r.lng),
            count=int(r.respondents),
            respondent_names=tuple(r.names),
            radius=marker_radius(int(r.respondents), max_count, min_radius, max_radius),
        )
        for r in grouped.itertuples(index=False)
    ]


# -------------------------
# Entry points
# -------------------------
def _collect(question: Question, batch_id: Optional[str], profiles: Sequence[RespondentProfile]) -> _Collected:
    entries = []
    for p in profiles:
        answer = load_answer(p.answers.get(question.id), question)
        if answer is not None:
            entries.append((p, answer))
    return _Collected(question=question, batch_id=batch_id, entries=entries)


def aggregate_question(
    question: Question,
    profiles: Sequence[RespondentProfile],
    catalog: QuestionCatalog = DEFAULT_CATALOG,
    min_radius: float = DEFAULT_MIN_RADIUS,
    max_radius: float = DEFAULT_MAX_RADIUS,
) -> QuestionAggregate:
    collected = _collect(question, catalog.batch_of(question.id), profiles)
    base = dict(
        question_id=question.id,
        kind=question.kind.value,
        prompt=question.prompt,
        batch_id=collected.batch_id,
        response_count=len(collected.entries),
        sensitive=question.sensitive,
        aggregate_only=question.aggregate_only,
    )
    if not collected.entries:
        return QuestionAggregate(status=STATUS_NO_RESPONSES, **base)

    parts = _AGGREGATORS[question.kind](collected, min_radius=min_radius, max_radius=max_radius)
    return QuestionAggregate(status=STATUS_OK, **base, **parts)


def aggregate_party(
    profiles: Sequence[RespondentProfile],
    catalog: QuestionCatalog = DEFAULT_CATALOG,
    party_id: Optional[str] = None,
    min_radius: float = DEFAULT_MIN_RADIUS,
    max_radius: float = DEFAULT_MAX_RADIUS,
) -> PartyAggregate:
    questions = [
        aggregate_question(q, profiles, catalog=catalog, min_radius=min_radius, max_radius=max_radius)
        for q in catalog.get_all_questions()
    ]
    return PartyAggregate(party_id=party_id, respondent_count=len(profiles), questions=questions)


def aggregate_party_from_settings(
    profiles: Sequence[RespondentProfile],
    settings: Settings,
    catalog: QuestionCatalog = DEFAULT_CATALOG,
    party_id: Optional[str] = None,
) -> PartyAggregate:
    # Marker sizes come from APP_MARKER_MIN_RADIUS / APP_MARKER_MAX_RADIUS.
    return aggregate_party(
        profiles,
        catalog=catalog,
        party_id=party_id,
        min_radius=settings.marker_min_radius,
        max_radius=settings.marker_max_radius,
    )

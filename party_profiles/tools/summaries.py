from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from party_profiles.db.models import RespondentProfile
from party_profiles.questionnaire.catalog import DEFAULT_CATALOG, QuestionCatalog
from party_profiles.questionnaire.codec import display_answer
from party_profiles.questionnaire.progression import batch_statuses, calculate_progress


@dataclass(frozen=True)
class RespondentSummary:
    respondent_id: str
    display_name: Optional[str]
    batch_statuses: Dict[str, str]
    completion_percentage: int
    answers: Dict[str, str] = field(default_factory=dict)
    hidden_question_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def summarize_respondent(
    profile: RespondentProfile,
    catalog: QuestionCatalog = DEFAULT_CATALOG,
    include_private: bool = False,
) -> RespondentSummary:
    """
    Projection for the host's "browse by person" view.

    Answers are resolved to display labels in catalog order. Questions marked
    aggregate-only are withheld unless ``include_private`` is set; their ids
    are listed in ``hidden_question_ids``.
    """
    answers: Dict[str, str] = {}
    hidden: List[str] = []
    for q in catalog.get_all_questions():
        text = display_answer(profile.answers.get(q.id), q)
        if not text:
            continue
        if q.aggregate_only and not include_private:
            hidden.append(q.id)
            continue
        answers[q.id] = text

    return RespondentSummary(
        respondent_id=profile.respondent_id,
        display_name=profile.display_name,
        batch_statuses=batch_statuses(profile.batch_progress, catalog),
        completion_percentage=calculate_progress(profile.batch_progress, catalog),
        answers=answers,
        hidden_question_ids=hidden,
    )


def summarize_party(
    profiles: Sequence[RespondentProfile],
    catalog: QuestionCatalog = DEFAULT_CATALOG,
    include_private: bool = False,
) -> List[RespondentSummary]:
    summaries = [summarize_respondent(p, catalog, include_private=include_private) for p in profiles]
    return sorted(summaries, key=lambda s: ((s.display_name or "").casefold(), s.respondent_id))

from __future__ import annotations

import csv
from typing import List, Sequence

import pandas as pd

from party_profiles.db.models import RespondentProfile
from party_profiles.questionnaire.catalog import DEFAULT_CATALOG, QuestionCatalog
from party_profiles.questionnaire.codec import display_answer
from party_profiles.questionnaire.progression import status_of

IDENTITY_COLUMNS = ["respondent_id", "display_name"]


def export_columns(catalog: QuestionCatalog = DEFAULT_CATALOG) -> List[str]:
    # Identity, then one column per question (catalog order), then one status column per batch.
    return (
        IDENTITY_COLUMNS
        + [q.id for q in catalog.get_all_questions()]
        + [f"status_{batch_id}" for batch_id in catalog.batch_ids()]
    )


def profiles_dataframe(
    profiles: Sequence[RespondentProfile],
    catalog: QuestionCatalog = DEFAULT_CATALOG,
) -> pd.DataFrame:
    """
    Wide table of human-readable answers, one row per respondent.

    Option ids are resolved to their labels the same way aggregation does;
    unanswered cells are empty strings.
    """
    questions = catalog.get_all_questions()
    records = []
    for p in profiles:
        row = {"respondent_id": p.respondent_id, "display_name": p.display_name or ""}
        for q in questions:
            row[q.id] = display_answer(p.answers.get(q.id), q)
        for batch_id in catalog.batch_ids():
            row[f"status_{batch_id}"] = status_of(p.batch_progress, batch_id).value
        records.append(row)
    return pd.DataFrame(records, columns=export_columns(catalog), dtype=object)


def export_csv(
    profiles: Sequence[RespondentProfile],
    catalog: QuestionCatalog = DEFAULT_CATALOG,
) -> str:
    # Every cell quoted; embedded quotes doubled per RFC 4180.
    df = profiles_dataframe(profiles, catalog)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")

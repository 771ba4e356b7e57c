from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .catalog import DEFAULT_CATALOG, QuestionCatalog
from .codec import load_answer
from .models import Question


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    missing_question_ids: List[str] = field(default_factory=list)
    message: str = ""


def _is_missing(value: Any, question: Question) -> bool:
    # Anything the codec cannot read back as a non-empty answer counts as missing.
    return load_answer(value, question) is None


def validate_batch(
    batch_id: str,
    answers: Optional[Mapping[str, Any]],
    catalog: QuestionCatalog = DEFAULT_CATALOG,
) -> ValidationResult:
    """
    Structural completeness check for one batch.

    A required question is missing when its key is absent or its stored value
    decodes to an empty answer (blank text, an empty write-in, no selection). Answers to questions of other batches are ignored, and answer
    content is not judged.
    """
    batch = catalog.get_batch(batch_id)
    if batch is None:
        return ValidationResult(valid=False, missing_question_ids=[], message="Batch not found")

    answers = answers or {}
    missing = [q.id for q in batch.required_questions() if _is_missing(answers.get(q.id), q)]
    if missing:
        return ValidationResult(
            valid=False,
            missing_question_ids=missing,
            message=f"Please answer all required questions ({len(missing)} remaining)",
        )
    return ValidationResult(valid=True)


def validate_basic_info(display_name: Optional[str]) -> ValidationResult:
    if not (display_name or "").strip():
        return ValidationResult(
            valid=False,
            missing_question_ids=["display_name"],
            message="Please enter your display name",
        )
    return ValidationResult(valid=True)

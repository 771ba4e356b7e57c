# models.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple


class QuestionKind(str, enum.Enum):
    EITHER_OR = "either_or"
    SINGLE_CHOICE = "single_choice"
    DROPDOWN = "dropdown"
    SHORT_TEXT = "short_text"
    PHOTO_UPLOAD = "photo_upload"


class BatchStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


# either_or modifier tokens, stored next to (never together with) the base option ids
BOTH = "BOTH"
NEITHER = "NEITHER"
DONT_KNOW = "DONT_KNOW"
MODIFIER_LABELS = {
    BOTH: "Both",
    NEITHER: "Neither",
    DONT_KNOW: "Don't know",
}

CHOICE_KINDS = frozenset({QuestionKind.EITHER_OR, QuestionKind.SINGLE_CHOICE, QuestionKind.DROPDOWN})


@dataclass(frozen=True)
class Option:
    id: str
    label: str
    write_in: bool = False


@dataclass(frozen=True)
class QuestionFlags:
    allow_both: bool = False
    allow_neither: bool = False
    allow_dont_know: bool = False

    def allowed_modifiers(self) -> Tuple[str, ...]:
        out = []
        if self.allow_both:
            out.append(BOTH)
        if self.allow_neither:
            out.append(NEITHER)
        if self.allow_dont_know:
            out.append(DONT_KNOW)
        return tuple(out)


@dataclass(frozen=True)
class Question:
    id: str
    kind: QuestionKind
    prompt: str
    required: bool = False
    options: Tuple[Option, ...] = ()
    flags: QuestionFlags = field(default_factory=QuestionFlags)

    # Display metadata
    order: int = 0
    category: Optional[str] = None
    placeholder: str = ""
    help_text: Optional[str] = None
    max_length: int = 100
    write_in_max_length: int = 50

    # Behaviour switches
    sensitive: bool = False
    aggregate_only: bool = False
    location: bool = False
    ordered: bool = False

    def option(self, option_id: str) -> Optional[Option]:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    def option_ids(self) -> Tuple[str, ...]:
        return tuple(opt.id for opt in self.options)

    def label_for(self, token: str) -> str:
        # Resolve an option id or modifier token to its display label.
        opt = self.option(token)
        if opt is not None:
            return opt.label
        return MODIFIER_LABELS.get(token, token)


@dataclass(frozen=True)
class Batch:
    id: str
    title: str
    questions: Tuple[Question, ...]
    description: str = ""
    emoji: str = ""
    estimated_time: str = ""

    def question_ids(self) -> Tuple[str, ...]:
        return tuple(q.id for q in self.questions)

    def required_questions(self) -> Tuple[Question, ...]:
        return tuple(q for q in self.questions if q.required)

"""
Stored answer variants.

One frozen dataclass per question kind. Codecs in ``codec.py`` convert between
these values, the UI-level selection state and the JSON-friendly wire form kept
in a profile's ``answers`` map.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .models import MODIFIER_LABELS


@dataclass(frozen=True)
class TextAnswer:
    text: str


@dataclass(frozen=True)
class DropdownAnswer:
    value: str


@dataclass(frozen=True)
class ChoiceAnswer:
    option_id: str


@dataclass(frozen=True)
class WriteInAnswer:
    option_id: str
    text: str


@dataclass(frozen=True)
class EitherOrAnswer:
    options: Tuple[str, ...] = ()
    modifier: Optional[str] = None

    def __post_init__(self) -> None:
        if self.options and self.modifier:
            raise ValueError("either_or answer cannot mix base options with a modifier")
        if self.modifier is not None and self.modifier not in MODIFIER_LABELS:
            raise ValueError(f"unknown either_or modifier: {self.modifier!r}")

    @property
    def tokens(self) -> Tuple[str, ...]:
        return (self.modifier,) if self.modifier else self.options


@dataclass(frozen=True)
class PhotoAnswer:
    url: str


Answer = Union[TextAnswer, DropdownAnswer, ChoiceAnswer, WriteInAnswer, EitherOrAnswer, PhotoAnswer]


@dataclass(frozen=True)
class ChoiceSelection:
    # UI state of a single_choice question: the picked option and, for write-in options, the typed text.
    option_id: str
    text: Optional[str] = None

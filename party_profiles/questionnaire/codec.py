"""
Per-kind answer codecs.

Every question kind has one codec implementing the same operations:

- ``encode``: UI selection state -> stored ``Answer`` (enforces the kind's rules).
- ``decode``: stored ``Answer`` -> UI selection state (pre-fills a revisited batch).
- ``dump`` / ``load``: ``Answer`` <-> JSON-friendly wire value kept in the profile.
- ``is_empty``: whether the answer carries anything worth counting.
- ``tally_keys``: the (bucket key, label, is_write_in) entries an answer contributes to a frequency table.
- ``display``: human-readable text used by summaries and CSV export.

``decode(encode(x)) == x`` holds for every canonical input ``x``.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from party_profiles.app.errors import AnswerContractError

from .answers import (
    Answer,
    ChoiceAnswer,
    ChoiceSelection,
    DropdownAnswer,
    EitherOrAnswer,
    PhotoAnswer,
    TextAnswer,
    WriteInAnswer,
)
from .models import MODIFIER_LABELS, Question, QuestionKind

TallyKey = Tuple[Tuple[str, str], str, bool]

LEGACY_WRITE_IN_PREFIX = "X:"


class AnswerCodec:
    kind: QuestionKind

    def encode(self, raw: Any, question: Question) -> Answer:
        raise NotImplementedError

    def decode(self, answer: Answer, question: Question) -> Any:
        raise NotImplementedError

    def dump(self, answer: Answer) -> Any:
        raise NotImplementedError

    def load(self, wire: Any, question: Question) -> Optional[Answer]:
        raise NotImplementedError

    def is_empty(self, answer: Answer) -> bool:
        return False

    def tally_keys(self, answer: Answer, question: Question) -> List[TallyKey]:
        return []

    def display(self, answer: Answer, question: Question) -> str:
        raise NotImplementedError

    def _check_type(self, answer: Any, *types: type) -> None:
        if not isinstance(answer, types):
            names = ", ".join(t.__name__ for t in types)
            raise AnswerContractError(f"{self.kind.value} expects {names}, got {type(answer).__name__}")


# -------------------------
# short_text
# -------------------------
class ShortTextCodec(AnswerCodec):
    kind = QuestionKind.SHORT_TEXT

    def encode(self, raw: Any, question: Question) -> TextAnswer:
        if not isinstance(raw, str):
            raise AnswerContractError(f"Question {question.id!r} expects text, got {type(raw).__name__}")
        text = raw.strip()
        if len(text) > question.max_length:
            raise AnswerContractError(
                f"Question {question.id!r} accepts at most {question.max_length} characters."
            )
        return TextAnswer(text)

    def decode(self, answer: Answer, question: Question) -> str:
        self._check_type(answer, TextAnswer)
        return answer.text

    def dump(self, answer: Answer) -> str:
        return answer.text

    def load(self, wire: Any, question: Question) -> Optional[TextAnswer]:
        if wire is None:
            return None
        return TextAnswer(str(wire).strip())

    def is_empty(self, answer: Answer) -> bool:
        return not answer.text

    def display(self, answer: Answer, question: Question) -> str:
        return answer.text


# -------------------------
# dropdown
# -------------------------
class DropdownCodec(AnswerCodec):
    kind = QuestionKind.DROPDOWN

    def encode(self, raw: Any, question: Question) -> DropdownAnswer:
        if not isinstance(raw, str):
            raise AnswerContractError(f"Question {question.id!r} expects an option label.")
        if raw == "":
            return DropdownAnswer("")
        wanted = raw.strip().casefold()
        for opt in question.options:
            if opt.label.casefold() == wanted:
                return DropdownAnswer(opt.label)
        raise AnswerContractError(f"{raw!r} is not an option of question {question.id!r}.")

    def decode(self, answer: Answer, question: Question) -> str:
        self._check_type(answer, DropdownAnswer)
        return answer.value

    def dump(self, answer: Answer) -> str:
        return answer.value

    def load(self, wire: Any, question: Question) -> Optional[DropdownAnswer]:
        if wire is None:
            return None
        return DropdownAnswer(str(wire).strip())

    def is_empty(self, answer: Answer) -> bool:
        return not answer.value

    def tally_keys(self, answer: Answer, question: Question) -> List[TallyKey]:
        # Bucket case-insensitively; the first spelling seen becomes the label downstream.
        return [(("value", answer.value.casefold()), answer.value, False)]

    def display(self, answer: Answer, question: Question) -> str:
        return answer.value


# -------------------------
# single_choice (with optional write-in option)
# -------------------------
class SingleChoiceCodec(AnswerCodec):
    kind = QuestionKind.SINGLE_CHOICE

    def encode(self, raw: Any, question: Question) -> Answer:
        if isinstance(raw, str):
            raw = ChoiceSelection(option_id=raw)
        if not isinstance(raw, ChoiceSelection):
            raise AnswerContractError(f"Question {question.id!r} expects a ChoiceSelection.")

        opt = question.option(raw.option_id)
        if opt is None:
            raise AnswerContractError(f"Option {raw.option_id!r} is not part of question {question.id!r}.")

        if opt.write_in:
            text = (raw.text or "").strip()
            if len(text) > question.write_in_max_length:
                raise AnswerContractError(
                    f"Write-in for {question.id!r} accepts at most {question.write_in_max_length} characters."
                )
            return WriteInAnswer(option_id=opt.id, text=text)

        if raw.text:
            raise AnswerContractError(f"Option {opt.id!r} of {question.id!r} does not accept free text.")
        return ChoiceAnswer(option_id=opt.id)

    def decode(self, answer: Answer, question: Question) -> ChoiceSelection:
        self._check_type(answer, ChoiceAnswer, WriteInAnswer)
        if isinstance(answer, WriteInAnswer):
            return ChoiceSelection(option_id=answer.option_id, text=answer.text)
        return ChoiceSelection(option_id=answer.option_id)

    def dump(self, answer: Answer) -> Dict[str, str]:
        if isinstance(answer, WriteInAnswer):
            return {"type": "free_text", "id": answer.option_id, "text": answer.text}
        return {"type": "option", "id": answer.option_id}

    def load(self, wire: Any, question: Question) -> Optional[Answer]:
        if wire is None or wire == "":
            return None

        if isinstance(wire, dict):
            if wire.get("type") == "free_text":
                return WriteInAnswer(option_id=str(wire.get("id") or self._write_in_id(question)),
                                     text=str(wire.get("text") or "").strip())
            return ChoiceAnswer(option_id=str(wire.get("id", "")))

        # Legacy string form: "A" or "X:<free text>"
        s = str(wire)
        if s.startswith(LEGACY_WRITE_IN_PREFIX):
            return WriteInAnswer(option_id=self._write_in_id(question), text=s[len(LEGACY_WRITE_IN_PREFIX):].strip())
        return ChoiceAnswer(option_id=s)

    def is_empty(self, answer: Answer) -> bool:
        if isinstance(answer, WriteInAnswer):
            return not answer.text
        return not answer.option_id

    def tally_keys(self, answer: Answer, question: Question) -> List[TallyKey]:
        if isinstance(answer, WriteInAnswer):
            return [(("write_in", answer.text), answer.text, True)]
        return [(("option", answer.option_id), question.label_for(answer.option_id), False)]

    def display(self, answer: Answer, question: Question) -> str:
        if isinstance(answer, WriteInAnswer):
            return answer.text
        return question.label_for(answer.option_id)

    @staticmethod
    def _write_in_id(question: Question) -> str:
        for opt in question.options:
            if opt.write_in:
                return opt.id
        return "X"


# -------------------------
# either_or (A vs B plus Both / Neither / Don't know modifiers)
# -------------------------
def apply_either_or_click(selection: Sequence[str], token: str, question: Question) -> Tuple[str, ...]:
    """
    Toggle reducer for one click on an either_or card.

    Clicking a modifier clears the base options and toggles that modifier.
    Clicking a base option clears any modifier; without ``allow_both`` the
    other base option is deselected first.
    """
    _check_token(token, question)
    current = list(selection)
    base_ids = question.option_ids()

    if token in MODIFIER_LABELS:
        was_active = token in current
        return () if was_active else (token,)

    options = [t for t in current if t in base_ids]
    if token in options:
        options.remove(token)
    else:
        if not question.flags.allow_both:
            options = []
        options.append(token)
    return _canonical_options(options, question)


def _check_token(token: str, question: Question) -> None:
    if token in question.option_ids():
        return
    if token in MODIFIER_LABELS:
        if token not in question.flags.allowed_modifiers():
            raise AnswerContractError(f"Modifier {token!r} is not allowed for question {question.id!r}.")
        return
    raise AnswerContractError(f"Option {token!r} is not part of question {question.id!r}.")


def _canonical_options(options: Sequence[str], question: Question) -> Tuple[str, ...]:
    # Catalog order (A before B), no duplicates.
    chosen = set(options)
    return tuple(oid for oid in question.option_ids() if oid in chosen)


class EitherOrCodec(AnswerCodec):
    kind = QuestionKind.EITHER_OR

    def encode(self, raw: Any, question: Question) -> EitherOrAnswer:
        if isinstance(raw, str):
            raw = [t for t in raw.split(",") if t]
        if not isinstance(raw, (list, tuple)):
            raise AnswerContractError(f"Question {question.id!r} expects a list of selected tokens.")

        # Apply as successive "select" clicks: modifiers replace everything,
        # base options clear modifiers, and are exclusive unless allow_both.
        options: List[str] = []
        modifier: Optional[str] = None
        for token in raw:
            _check_token(token, question)
            if token in MODIFIER_LABELS:
                options, modifier = [], token
            else:
                modifier = None
                if token in options:
                    continue
                if not question.flags.allow_both:
                    options = []
                options.append(token)

        if modifier:
            return EitherOrAnswer(modifier=modifier)
        return EitherOrAnswer(options=_canonical_options(options, question))

    def decode(self, answer: Answer, question: Question) -> Tuple[str, ...]:
        self._check_type(answer, EitherOrAnswer)
        return answer.tokens

    def dump(self, answer: Answer) -> str:
        return ",".join(answer.tokens)

    def load(self, wire: Any, question: Question) -> Optional[EitherOrAnswer]:
        if wire is None:
            return None
        if isinstance(wire, (list, tuple)):
            tokens = [str(t).strip() for t in wire]
        else:
            tokens = [t.strip() for t in str(wire).split(",")]
        tokens = [t for t in tokens if t]

        modifiers = [t for t in tokens if t in MODIFIER_LABELS]
        if modifiers:
            # Stored data predating the exclusivity rule: the modifier wins.
            return EitherOrAnswer(modifier=modifiers[-1])
        return EitherOrAnswer(options=tuple(dict.fromkeys(tokens)))

    def is_empty(self, answer: Answer) -> bool:
        return not answer.tokens

    def tally_keys(self, answer: Answer, question: Question) -> List[TallyKey]:
        # Resolve ids to labels: "A"/"B" are reused by every either_or question.
        return [(("token", token), question.label_for(token), False) for token in answer.tokens]

    def display(self, answer: Answer, question: Question) -> str:
        return " & ".join(question.label_for(t) for t in answer.tokens)


# -------------------------
# photo_upload
# -------------------------
class PhotoUploadCodec(AnswerCodec):
    kind = QuestionKind.PHOTO_UPLOAD

    def encode(self, raw: Any, question: Question) -> PhotoAnswer:
        if not isinstance(raw, str):
            raise AnswerContractError(
                f"Question {question.id!r} expects a stored file reference; upload the blob first."
            )
        return PhotoAnswer(url=raw.strip())

    def decode(self, answer: Answer, question: Question) -> str:
        self._check_type(answer, PhotoAnswer)
        return answer.url

    def dump(self, answer: Answer) -> Any:
        if not answer.url:
            return ""
        return {"type": "photo", "url": answer.url, "has_photo": True}

    def load(self, wire: Any, question: Question) -> Optional[PhotoAnswer]:
        if wire is None:
            return None
        if isinstance(wire, dict):
            if not wire.get("has_photo", True):
                return PhotoAnswer(url="")
            return PhotoAnswer(url=str(wire.get("url") or ""))
        return PhotoAnswer(url=str(wire))

    def is_empty(self, answer: Answer) -> bool:
        return not answer.url

    def display(self, answer: Answer, question: Question) -> str:
        return answer.url


_CODECS: Dict[QuestionKind, AnswerCodec] = {
    c.kind: c
    for c in (ShortTextCodec(), DropdownCodec(), SingleChoiceCodec(), EitherOrCodec(), PhotoUploadCodec())
}

_missing = set(QuestionKind) - set(_CODECS)
if _missing:
    raise RuntimeError(f"No answer codec registered for: {sorted(k.value for k in _missing)}")


def codec_for(kind: QuestionKind) -> AnswerCodec:
    return _CODECS[QuestionKind(kind)]


def encode_answer(raw: Any, question: Question) -> Answer:
    return codec_for(question.kind).encode(raw, question)


def decode_answer(answer: Answer, question: Question) -> Any:
    return codec_for(question.kind).decode(answer, question)


def dump_answer(answer: Answer, question: Question) -> Any:
    # Empty answers of every kind share one wire value, so "" always means unanswered.
    codec = codec_for(question.kind)
    if codec.is_empty(answer):
        return ""
    return codec.dump(answer)


def load_answer(wire: Any, question: Question) -> Optional[Answer]:
    # Wire -> Answer; None when nothing usable is stored.
    if wire is None or wire == "":
        return None
    codec = codec_for(question.kind)
    answer = codec.load(wire, question)
    if answer is None or codec.is_empty(answer):
        return None
    return answer


def display_answer(wire: Any, question: Question) -> str:
    answer = load_answer(wire, question)
    if answer is None:
        return ""
    return codec_for(question.kind).display(answer, question)

# session.py
from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

from party_profiles.app.errors import (
    AnswerContractError,
    BatchLockedError,
    GeocodingError,
    ProfileNotFoundError,
)
from party_profiles.app.logging import get_logger, session_key_scope
from party_profiles.db.models import LocationFix, RespondentProfile
from party_profiles.db.repository import SQLiteProfileRepository
from party_profiles.questionnaire.catalog import DEFAULT_CATALOG, QuestionCatalog
from party_profiles.questionnaire.codec import decode_answer, dump_answer, encode_answer, load_answer
from party_profiles.questionnaire.models import Batch, Question, QuestionKind
from party_profiles.questionnaire.progression import (
    all_batches_complete,
    calculate_progress,
    get_next_batch,
    is_batch_locked,
    mark_complete,
    mark_in_progress,
    status_of,
)
from party_profiles.questionnaire.validator import ValidationResult, validate_basic_info, validate_batch
from party_profiles.services.file_store import LocalFileStore
from party_profiles.services.geocoder import NominatimGeocoder

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _as_respondent(method: F) -> F:
    # Tags every log record emitted during the call with this session's party:respondent key.
    @functools.wraps(method)
    def wrapper(self: "ProfileSession", *args: Any, **kwargs: Any) -> Any:
        with session_key_scope(self.party_id, self.respondent_id):
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


@dataclass(frozen=True)
class PhotoUpload:
    # Raw photo_upload input before it reaches the file store.
    blob: bytes
    filename: Optional[str] = None


@dataclass(frozen=True)
class BatchView:
    batch: Batch
    status: str
    prefill: Dict[str, Any] = field(default_factory=dict)
    answered_count: int = 0

    @property
    def total_questions(self) -> int:
        return len(self.batch.questions)


@dataclass(frozen=True)
class SubmitResult:
    validation: ValidationResult
    profile: Optional[RespondentProfile]
    completion_percentage: int = 0
    next_batch_id: Optional[str] = None
    all_complete: bool = False

    @property
    def ok(self) -> bool:
        return self.validation.valid


class ProfileSession:
    """
    One respondent's questionnaire session for one party.

    All state lives on the instance and in the store, so several sessions can
    run side by side. Every save is a read-modify-write of the full merged
    maps followed by one upsert; store failures propagate to the caller.
    """

    def __init__(
        self,
        party_id: str,
        respondent_id: str,
        repository: SQLiteProfileRepository,
        catalog: QuestionCatalog = DEFAULT_CATALOG,
        geocoder: Optional[NominatimGeocoder] = None,
        file_store: Optional[LocalFileStore] = None,
    ):
        self.party_id = party_id
        self.respondent_id = respondent_id
        self.repo = repository
        self.catalog = catalog
        self.geocoder = geocoder
        self.file_store = file_store

    # -------------------------
    # Reads
    # -------------------------
    @_as_respondent
    def load(self) -> Optional[RespondentProfile]:
        return self.repo.get(self.party_id, self.respondent_id)

    @_as_respondent
    def needs_basic_info(self) -> bool:
        profile = self.load()
        return profile is None or not profile.display_name

    @_as_respondent
    def progress(self) -> int:
        profile = self.load()
        return calculate_progress(profile.batch_progress if profile else {}, self.catalog)

    @_as_respondent
    def is_locked(self, batch_id: str) -> bool:
        profile = self.load()
        return is_batch_locked(batch_id, profile.batch_progress if profile else {}, self.catalog)

    @_as_respondent
    def open_batch(self, batch_id: str) -> BatchView:
        profile = self._require_profile()
        batch = self.catalog.get_batch(batch_id)
        if batch is None or is_batch_locked(batch_id, profile.batch_progress, self.catalog):
            raise BatchLockedError(batch_id)

        prefill: Dict[str, Any] = {}
        for q in batch.questions:
            answer = load_answer(profile.answers.get(q.id), q)
            if answer is not None:
                prefill[q.id] = decode_answer(answer, q)

        return BatchView(
            batch=batch,
            status=status_of(profile.batch_progress, batch_id).value,
            prefill=prefill,
            answered_count=len(prefill),
        )

    # -------------------------
    # Writes
    # -------------------------
    @_as_respondent
    def save_basic_info(self, display_name: str, whatsapp_number: Optional[str] = None) -> ValidationResult:
        result = validate_basic_info(display_name)
        if not result.valid:
            return result

        # Existing answers and progress are kept when a guest edits their name.
        existing = self.load()
        fields: Dict[str, Any] = {
            "display_name": display_name.strip(),
            "whatsapp_number": (whatsapp_number or "").strip() or None,
        }
        if existing is None:
            fields.update(answers={}, batch_progress={}, locations={})
        self.repo.upsert(self.party_id, self.respondent_id, **fields)
        logger.info("basic info saved", extra={"new_profile": existing is None})
        return result

    @_as_respondent
    def save_draft(self, batch_id: str, raw_answers: Mapping[str, Any]) -> RespondentProfile:
        profile = self._require_profile()
        batch = self._require_unlocked(batch_id, profile)

        encoded = self._encode_batch(batch, raw_answers)
        answers = {**profile.answers, **encoded}
        progress = dict(profile.batch_progress)
        if any(load_answer(v, self.catalog.get_question(qid)) is not None for qid, v in encoded.items()):
            progress = mark_in_progress(progress, batch_id)

        locations = self._refresh_locations(batch, answers, profile.locations)
        saved = self.repo.upsert(
            self.party_id, self.respondent_id,
            answers=answers, batch_progress=progress, locations=locations,
        )
        logger.info("draft saved", extra={"batch_id": batch_id, "answered": len(encoded)})
        return saved

    @_as_respondent
    def submit_batch(self, batch_id: str, raw_answers: Mapping[str, Any]) -> SubmitResult:
        profile = self._require_profile()
        batch = self._require_unlocked(batch_id, profile)

        encoded = self._encode_batch(batch, raw_answers)
        answers = {**profile.answers, **encoded}

        validation = validate_batch(batch_id, answers, self.catalog)
        if not validation.valid:
            logger.info("batch submission incomplete",
                        extra={"batch_id": batch_id, "missing": validation.missing_question_ids})
            return SubmitResult(
                validation=validation,
                profile=profile,
                completion_percentage=calculate_progress(profile.batch_progress, self.catalog),
            )

        progress = mark_complete(profile.batch_progress, batch_id)
        locations = self._refresh_locations(batch, answers, profile.locations)
        saved = self.repo.upsert(
            self.party_id, self.respondent_id,
            answers=answers, batch_progress=progress, locations=locations,
        )

        next_batch = get_next_batch(progress, self.catalog)
        logger.info("batch completed", extra={"batch_id": batch_id})
        return SubmitResult(
            validation=validation,
            profile=saved,
            completion_percentage=calculate_progress(progress, self.catalog),
            next_batch_id=next_batch.id if next_batch else None,
            all_complete=all_batches_complete(progress, self.catalog),
        )

    # -------------------------
    # Internals
    # -------------------------
    def _require_profile(self) -> RespondentProfile:
        profile = self.load()
        if profile is None:
            raise ProfileNotFoundError(
                f"No profile for respondent {self.respondent_id!r} in party {self.party_id!r}; save basic info first."
            )
        return profile

    def _require_unlocked(self, batch_id: str, profile: RespondentProfile) -> Batch:
        batch = self.catalog.get_batch(batch_id)
        if batch is None or is_batch_locked(batch_id, profile.batch_progress, self.catalog):
            raise BatchLockedError(batch_id)
        return batch

    def _encode_batch(self, batch: Batch, raw_answers: Mapping[str, Any]) -> Dict[str, Any]:
        in_batch = {q.id: q for q in batch.questions}
        out: Dict[str, Any] = {}
        for qid, raw in raw_answers.items():
            question = in_batch.get(qid)
            if question is None:
                logger.warning("ignoring answer for question outside batch",
                               extra={"batch_id": batch.id, "question_id": qid})
                continue
            if raw is None:
                continue
            if question.kind == QuestionKind.PHOTO_UPLOAD:
                raw = self._store_photo(question, raw)
            out[qid] = dump_answer(encode_answer(raw, question), question)
        return out

    def _store_photo(self, question: Question, raw: Any) -> Any:
        if isinstance(raw, PhotoUpload):
            blob, filename = raw.blob, raw.filename
        elif isinstance(raw, (bytes, bytearray)):
            blob, filename = bytes(raw), None
        else:
            return raw
        if self.file_store is None:
            raise AnswerContractError(f"Question {question.id!r} received a blob but no file store is configured.")
        # Upload failures propagate; the answer is never saved without its file.
        return self.file_store.upload(blob, filename)

    def _refresh_locations(
        self,
        batch: Batch,
        answers: Mapping[str, Any],
        current: Mapping[str, LocationFix],
    ) -> Dict[str, LocationFix]:
        # Best effort: a failed lookup stores the place with null coordinates and never blocks the save.
        locations = dict(current)
        for q in batch.questions:
            if not q.location:
                continue
            answer = load_answer(answers.get(q.id), q)
            if answer is None:
                locations.pop(q.id, None)
                continue

            place = answer.text
            previous = locations.get(q.id)
            if previous is not None and previous.place == place and previous.has_coordinates:
                continue
            locations[q.id] = self._geocode(q.id, place)
        return locations

    def _geocode(self, question_id: str, place: str) -> LocationFix:
        if self.geocoder is None:
            return LocationFix(place=place)
        try:
            point = self.geocoder.geocode(place)
        except GeocodingError as e:
            logger.warning("geocoding failed", extra={"question_id": question_id, "place": place, "error": str(e)})
            return LocationFix(place=place)
        if point is None:
            return LocationFix(place=place)
        return LocationFix(place=place, lat=point.lat, lng=point.lng, resolved_name=point.resolved_name)

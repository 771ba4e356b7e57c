"""
Backfill coordinates for location answers that were saved without them.

Geocoding during a batch submit is best effort, so profiles can end up with a
place name and no coordinates (service down, no match, no geocoder configured).
This job retries them one request at a time, within the geocoder's rate limit.

Usage:
    python -m party_profiles.workflows.geocode_backfill --question fav_city_travel [--party PARTY_ID]
"""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, dataclass
from typing import List, Optional

from party_profiles.app.config import Settings
from party_profiles.app.errors import GeocodingError, StoreError
from party_profiles.app.logging import get_logger, setup_logging
from party_profiles.db.models import LocationFix
from party_profiles.db.repository import SQLiteProfileRepository
from party_profiles.questionnaire.catalog import DEFAULT_CATALOG, QuestionCatalog
from party_profiles.questionnaire.codec import load_answer
from party_profiles.services.geocoder import NominatimGeocoder

logger = get_logger(__name__)


@dataclass
class BackfillSummary:
    question_id: str
    total: int = 0
    geocoded: int = 0
    skipped: int = 0
    failed: int = 0


def backfill_locations(
    repo: SQLiteProfileRepository,
    geocoder: NominatimGeocoder,
    question_id: str,
    party_id: Optional[str] = None,
    catalog: QuestionCatalog = DEFAULT_CATALOG,
) -> BackfillSummary:
    question = catalog.get_question(question_id)
    if question is None or not question.location:
        raise ValueError(f"{question_id!r} is not a location-bearing question.")

    profiles = repo.list_missing_locations(question_id, party_id=party_id)
    summary = BackfillSummary(question_id=question_id, total=len(profiles))

    for profile in profiles:
        answer = load_answer(profile.answers.get(question_id), question)
        if answer is None:
            summary.skipped += 1
            continue

        place = answer.text
        try:
            point = geocoder.geocode(place)
        except GeocodingError as e:
            logger.warning("backfill geocoding failed", extra={"place": place, "error": str(e)})
            summary.failed += 1
            continue
        if point is None:
            summary.failed += 1
            continue

        locations = dict(profile.locations)
        locations[question_id] = LocationFix(place=place, lat=point.lat, lng=point.lng,
                                             resolved_name=point.resolved_name)
        try:
            repo.upsert(profile.party_id, profile.respondent_id, locations=locations)
        except StoreError as e:
            logger.error("backfill update failed",
                         extra={"respondent_id": profile.respondent_id, "error": str(e)})
            summary.failed += 1
            continue
        summary.geocoded += 1

    logger.info("backfill finished", extra=asdict(summary))
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Geocode stored location answers that have no coordinates yet.")
    parser.add_argument("--question", default="fav_city_travel", help="location-bearing question id")
    parser.add_argument("--party", default=None, help="restrict to one party id")
    parser.add_argument("--env-file", default=".env")
    args = parser.parse_args(argv)

    settings = Settings.from_env(env_file=args.env_file)
    setup_logging(settings.log_level, settings.log_json)

    repo = SQLiteProfileRepository(settings.db_path)
    geocoder = NominatimGeocoder.from_settings(settings)
    try:
        summary = backfill_locations(repo, geocoder, args.question, party_id=args.party)
    except ValueError as e:
        parser.error(str(e))
        return 2

    print(json.dumps(asdict(summary), ensure_ascii=False))
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())

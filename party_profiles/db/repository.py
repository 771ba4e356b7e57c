# repository.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from party_profiles.app.logging import get_logger

from .connection import db_session
from .models import LocationFix, RespondentProfile

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

_JSON_FIELDS = {"answers", "batch_progress", "locations"}
_PLAIN_FIELDS = {"display_name", "whatsapp_number"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _load_json(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    value = json.loads(raw)
    return value if isinstance(value, dict) else {}


def _dump_field(key: str, value: Any) -> Any:
    if key not in _JSON_FIELDS:
        return value
    value = value or {}
    if key == "locations":
        value = {qid: (fix.to_dict() if isinstance(fix, LocationFix) else dict(fix)) for qid, fix in value.items()}
    return json.dumps(value, ensure_ascii=False)


class SQLiteProfileRepository:
    """
    Response store: one row per (party, respondent).

    ``upsert`` merges at the top level only. ``answers``, ``batch_progress``
    and ``locations`` are replaced wholesale, so callers read-modify-write the
    merged maps themselves. Concurrent writers follow last-write-wins.
    """

    def __init__(self, db_path: str, init_schema: bool = True):
        self.db_path = db_path
        if init_schema:
            self.init_schema()

    def init_schema(self, schema_sql: Optional[str] = None) -> None:
        sql = schema_sql if schema_sql is not None else SCHEMA_PATH.read_text(encoding="utf-8")
        with db_session(self.db_path) as conn:
            conn.executescript(sql)

    # -------------------------
    # Single profile
    # -------------------------
    def get(self, party_id: str, respondent_id: str) -> Optional[RespondentProfile]:
        with db_session(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM party_profiles WHERE party_id = ? AND respondent_id = ?",
                (party_id, respondent_id),
            ).fetchone()
            return self._row_to_profile(row) if row else None

    def upsert(self, party_id: str, respondent_id: str, **fields: Any) -> RespondentProfile:
        unknown = set(fields) - _JSON_FIELDS - _PLAIN_FIELDS
        if unknown:
            raise ValueError(f"upsert: unknown profile fields {sorted(unknown)}")

        now = _now_iso()
        columns = ["party_id", "respondent_id", "updated_at"]
        params: List[Any] = [party_id, respondent_id, now]
        for key, value in fields.items():
            columns.append(key)
            params.append(_dump_field(key, value))

        update_parts = [f"{c}=excluded.{c}" for c in columns if c not in {"party_id", "respondent_id"}]
        placeholders = ", ".join(["?"] * len(columns))

        with db_session(self.db_path) as conn:
            conn.execute(
                f"""
                INSERT INTO party_profiles({', '.join(columns)}, created_at)
                VALUES ({placeholders}, ?)
                ON CONFLICT(party_id, respondent_id) DO UPDATE SET
                  {', '.join(update_parts)}
                """,
                (*params, now),
            )
            row = conn.execute(
                "SELECT * FROM party_profiles WHERE party_id = ? AND respondent_id = ?",
                (party_id, respondent_id),
            ).fetchone()

        logger.debug("profile upserted", extra={"party_id": party_id, "fields": sorted(fields)})
        return self._row_to_profile(row)

    # -------------------------
    # Bulk reads
    # -------------------------
    def list_profiles(self, party_id: str) -> List[RespondentProfile]:
        with db_session(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM party_profiles WHERE party_id = ? ORDER BY created_at ASC, respondent_id ASC",
                (party_id,),
            ).fetchall()
            return [self._row_to_profile(r) for r in rows]

    def list_missing_locations(self, question_id: str, party_id: Optional[str] = None) -> List[RespondentProfile]:
        # Profiles that have no coordinates stored for a location-bearing question.
        sql = "SELECT * FROM party_profiles"
        params: List[Any] = []
        if party_id is not None:
            sql += " WHERE party_id = ?"
            params.append(party_id)
        sql += " ORDER BY created_at ASC, respondent_id ASC"

        with db_session(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()

        out: List[RespondentProfile] = []
        for r in rows:
            profile = self._row_to_profile(r)
            fix = profile.location_for(question_id)
            if fix is None or not fix.has_coordinates:
                out.append(profile)
        return out

    def _row_to_profile(self, row: Any) -> RespondentProfile:
        locations = {qid: LocationFix.from_dict(d) for qid, d in _load_json(row["locations"]).items()}
        return RespondentProfile(
            party_id=row["party_id"],
            respondent_id=row["respondent_id"],
            display_name=row["display_name"],
            whatsapp_number=row["whatsapp_number"],
            answers=_load_json(row["answers"]),
            batch_progress=_load_json(row["batch_progress"]),
            locations=locations,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

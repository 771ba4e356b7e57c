from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional


# Context variable to attach the active respondent session to every log record.
_SESSION_KEY: ContextVar[Optional[str]] = ContextVar("session_key", default=None)

_RESERVED_ATTRS = {
    "msg", "args", "levelname", "levelno", "name", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "processName", "process",
    "taskName", "session_key",
}


@contextmanager
def session_key_scope(party_id: str, respondent_id: str) -> Iterator[None]:
    # "party:respondent" for records emitted inside the block; the previous key is restored on exit.
    token = _SESSION_KEY.set(f"{party_id}:{respondent_id}")
    try:
        yield
    finally:
        _SESSION_KEY.reset(token)


def current_session_key() -> Optional[str]:
    return _SESSION_KEY.get()


class SessionKeyFilter(logging.Filter):
    # Adds session_key to log records.
    def filter(self, record: logging.LogRecord) -> bool:
        record.session_key = _SESSION_KEY.get()
        return True


def _json_safe(value: Any) -> Any:
    try:
        json.dumps(value, ensure_ascii=False)
        return value
    except TypeError:
        return str(value)


class JsonFormatter(logging.Formatter):
    # One JSON object per record; fields passed via extra={} are copied to the top level.
    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc).replace(microsecond=0)
        payload: Dict[str, Any] = {
            "ts": created.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "session_key": getattr(record, "session_key", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        payload.update(
            (key, _json_safe(value)) for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
        )

        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_logs: bool = True) -> None:
    # Replaces any handlers already on the root logger.
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SessionKeyFilter())

    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s session=%(session_key)s %(message)s"
        ))

    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

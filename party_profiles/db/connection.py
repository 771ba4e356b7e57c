import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from party_profiles.app.errors import StoreError


def connect(db_path: str) -> sqlite3.Connection:
    # Generous timeout so a second device saving the same profile waits instead of failing.
    conn = sqlite3.connect(db_path, timeout=60.0)
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def db_session(db_path: str) -> Iterator[sqlite3.Connection]:
    # Commit on success, roll back on failure; sqlite errors surface as StoreError.
    conn: Optional[sqlite3.Connection] = None
    try:
        conn = connect(db_path)
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        if conn is not None:
            conn.rollback()
        raise StoreError(f"Profile store failure: {e}") from e
    except Exception:
        if conn is not None:
            conn.rollback()
        raise
    finally:
        if conn is not None:
            conn.close()

"""
SQLiteStorage – single-file SQL storage for Shorty Platform
===========================================================

Persists links in a local SQLite database. Implements `BaseStorage`, so it can
replace the in-memory backend without touching the Link Store.

Key Design Points
-----------------
- **One statement per operation**: the conflict check and the write in `claim`
  are one `INSERT ... ON CONFLICT DO UPDATE ... WHERE` statement; a lookup is
  one `UPDATE ... RETURNING`. SQLite executes each statement atomically under
  its database write lock, so concurrent callers never interleave inside them.
- **Connections**: a short-lived connection per call, autocommit, with a busy
  timeout so concurrent writers queue instead of failing immediately.
- **Errors**: `sqlite3.Error`, and `OverflowError` for integers outside the
  64-bit range, are wrapped into `StorageError`.

Requires SQLite 3.35+ (RETURNING).
"""

import contextlib
import sqlite3
from typing import Iterator, Optional

from ..errors import StorageError
from ..link import Link
from .base import BaseStorage

SCHEMA = """
CREATE TABLE IF NOT EXISTS links (
    id          TEXT PRIMARY KEY,
    redirect_to TEXT NOT NULL,
    max_uses    INTEGER NOT NULL DEFAULT 0,
    invocations INTEGER NOT NULL DEFAULT 0,
    created_at  INTEGER NOT NULL,
    valid_for   INTEGER NOT NULL DEFAULT 0
)
"""

CLAIM_SQL = """
INSERT INTO links (id, redirect_to, max_uses, invocations, created_at, valid_for)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT (id) DO UPDATE SET
    redirect_to = excluded.redirect_to,
    max_uses = excluded.max_uses,
    invocations = excluded.invocations,
    created_at = excluded.created_at,
    valid_for = excluded.valid_for
WHERE (links.valid_for != 0 AND ? - links.created_at > links.valid_for)
   OR (links.max_uses != 0 AND links.invocations >= links.max_uses)
"""

FETCH_AND_INCREMENT_SQL = """
UPDATE links SET invocations = invocations + 1
WHERE id = ?
RETURNING id, redirect_to, max_uses, invocations, created_at, valid_for
"""

DELETE_INVALID_SQL = """
DELETE FROM links
WHERE (max_uses != 0 AND invocations >= max_uses)
   OR (valid_for != 0 AND ? - created_at > valid_for)
"""


class SQLiteStorage(BaseStorage):
    """SQLite implementation of the link storage contract.

    Parameters
    ----------
    path : str
        Database file; created on first connect.
    timeout : float
        Seconds to wait for the database write lock.
    """

    def __init__(self, path: str, timeout: float = 30.0) -> None:
        self.path = path
        self.timeout = timeout

    # ---- Internal helpers -------------------------------------------------

    @contextlib.contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            con = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open {self.path}: {exc}") from exc
        con.row_factory = sqlite3.Row
        try:
            yield con
        except (sqlite3.Error, OverflowError) as exc:
            raise StorageError(str(exc)) from exc
        finally:
            con.close()

    # ---- Contract methods -------------------------------------------------

    def ensure_schema(self) -> None:
        with self._conn() as con:
            con.execute("PRAGMA journal_mode=WAL")
            con.execute(SCHEMA)

    def claim(self, link: Link, now: int) -> bool:
        with self._conn() as con:
            cur = con.execute(
                CLAIM_SQL,
                (
                    link.id,
                    link.redirect_to,
                    link.max_uses,
                    link.invocations,
                    link.created_at,
                    link.valid_for,
                    now,
                ),
            )
            return cur.rowcount == 1

    def fetch_and_increment(self, link_id: str) -> Optional[Link]:
        with self._conn() as con:
            rows = con.execute(FETCH_AND_INCREMENT_SQL, (link_id,)).fetchall()
            return Link.from_row(rows[0]) if rows else None

    def get_link(self, link_id: str) -> Optional[Link]:
        with self._conn() as con:
            row = con.execute(
                "SELECT id, redirect_to, max_uses, invocations, created_at, valid_for FROM links WHERE id = ?",
                (link_id,),
            ).fetchone()
            return Link.from_row(row) if row else None

    def delete_invalid(self, now: int) -> int:
        with self._conn() as con:
            cur = con.execute(DELETE_INVALID_SQL, (now,))
            return cur.rowcount

    def count(self) -> int:
        with self._conn() as con:
            row = con.execute("SELECT COUNT(*) FROM links").fetchone()
            return int(row[0])

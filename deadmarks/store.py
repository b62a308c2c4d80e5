from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from .errors import StoreError
from .model import Bookmark, StatusFilter

_SCHEMA = """
CREATE TABLE IF NOT EXISTS bookmarks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    folder TEXT,
    is_dead BOOLEAN DEFAULT FALSE,
    is_redirect BOOLEAN DEFAULT FALSE,
    redirect_url TEXT,
    is_duplicate BOOLEAN DEFAULT FALSE,
    duplicate_of INTEGER,
    FOREIGN KEY(duplicate_of) REFERENCES bookmarks(id)
);
CREATE INDEX IF NOT EXISTS idx_bookmarks_url ON bookmarks(url);
"""

_COLUMNS = "id, title, url, folder, is_dead, is_redirect, redirect_url, is_duplicate, duplicate_of"

_FILTER_WHERE = {
    StatusFilter.VALID: "WHERE is_dead = FALSE AND is_redirect = FALSE",
    StatusFilter.DEAD: "WHERE is_dead = TRUE",
    StatusFilter.REDIRECT: "WHERE is_redirect = TRUE",
    StatusFilter.ALL: "",
}


class BookmarkStore:
    """Single-table SQLite store for imported bookmarks.

    Writes outside of ``transaction()`` are committed immediately. The
    connection may be read from the validation producer thread, but only one
    thread uses it at a time.
    """

    def __init__(self, db_path: Path | str, *, busy_timeout_ms: int = 5000):
        self.db_path = Path(db_path)
        self.busy_timeout_ms = max(0, int(busy_timeout_ms))
        self.conn: sqlite3.Connection | None = None
        self._in_tx = False

    def __enter__(self) -> "BookmarkStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if str(self.db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        timeout_s = max(0.1, self.busy_timeout_ms / 1000.0)
        try:
            # Autocommit mode: transaction() issues BEGIN/COMMIT itself.
            self.conn = sqlite3.connect(
                str(self.db_path), timeout=timeout_s, isolation_level=None, check_same_thread=False
            )
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise StoreError(f"cannot open database {self.db_path}: {e}") from e

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def ensure_schema(self) -> None:
        try:
            self._cursor().executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"error initializing database: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator["BookmarkStore"]:
        """Commit everything done inside the block, or nothing on any error."""
        conn = self._conn()
        if self._in_tx:
            raise StoreError("nested transactions are not supported")
        self._in_tx = True
        try:
            conn.execute("BEGIN")
            yield self
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        except BaseException:
            conn.rollback()
            raise
        else:
            try:
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(f"error committing transaction: {e}") from e
        finally:
            self._in_tx = False

    def insert(self, b: Bookmark) -> int:
        c = self._cursor()
        try:
            c.execute(
                """
                INSERT INTO bookmarks (title, url, folder, is_duplicate, duplicate_of)
                VALUES (?, ?, ?, ?, ?)
                """,
                (b.title, b.url, b.folder, b.duplicate, b.duplicate_of),
            )
        except sqlite3.Error as e:
            raise StoreError(f"error inserting bookmark {b.url!r}: {e}") from e
        return int(c.lastrowid)

    def find_by_exact_url(self, url: str) -> Optional[int]:
        try:
            row = self._cursor().execute(
                "SELECT id FROM bookmarks WHERE url = ? ORDER BY id LIMIT 1",
                (url,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"error looking up {url!r}: {e}") from e
        return int(row["id"]) if row else None

    def iter_urls(self) -> Iterator[sqlite3.Row]:
        try:
            cur = self._cursor().execute("SELECT id, url FROM bookmarks ORDER BY id")
            yield from cur
        except sqlite3.Error as e:
            raise StoreError(f"error querying bookmarks: {e}") from e

    def update_status(self, bookmark_id: int, *, dead: bool, redirect: bool, redirect_url: str) -> None:
        try:
            cur = self._cursor().execute(
                "UPDATE bookmarks SET is_dead = ?, is_redirect = ?, redirect_url = ? WHERE id = ?",
                (dead, redirect, redirect_url or None, bookmark_id),
            )
        except sqlite3.Error as e:
            raise StoreError(f"error updating bookmark status: {e}") from e
        if cur.rowcount == 0:
            raise StoreError(f"bookmark id {bookmark_id} not found")

    def list_filtered(self, status_filter: StatusFilter = StatusFilter.ALL) -> List[Bookmark]:
        where = _FILTER_WHERE[StatusFilter(status_filter)]
        return self._select(f"SELECT {_COLUMNS} FROM bookmarks {where} ORDER BY folder, title")

    def search(self, query: str) -> List[Bookmark]:
        like = f"%{query}%"
        return self._select(
            f"SELECT {_COLUMNS} FROM bookmarks WHERE title LIKE ? OR url LIKE ? ORDER BY id",
            (like, like),
        )

    def count(self) -> int:
        try:
            row = self._cursor().execute("SELECT COUNT(*) AS n FROM bookmarks").fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"error counting bookmarks: {e}") from e
        return int(row["n"])

    def _select(self, sql: str, params: tuple = ()) -> List[Bookmark]:
        try:
            rows = self._cursor().execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"error reading bookmarks: {e}") from e
        return [_row_to_bookmark(r) for r in rows]

    def _conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StoreError("database is not open")
        return self.conn

    def _cursor(self) -> sqlite3.Cursor:
        return self._conn().cursor()


def _row_to_bookmark(r: sqlite3.Row) -> Bookmark:
    return Bookmark(
        id=int(r["id"]),
        title=r["title"] or "",
        url=r["url"] or "",
        folder=r["folder"] or "",
        dead=bool(r["is_dead"]),
        redirect=bool(r["is_redirect"]),
        redirect_url=r["redirect_url"] or "",
        duplicate=bool(r["is_duplicate"]),
        duplicate_of=int(r["duplicate_of"]) if r["duplicate_of"] is not None else None,
    )

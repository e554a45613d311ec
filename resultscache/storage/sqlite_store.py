"""SQLite persistence for attribute-keyed blobs."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from resultscache.storage.backend import StorageError


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StorageError(str(exc)) from exc


class SQLiteBlobStore:
    """Stores blobs by (id, attribute) in SQLite.

    Writes happen inside an implicit transaction and become durable on
    ``commit()``.
    """

    def __init__(self, db_path: Path | str, attrs: Iterable[str]) -> None:
        self._attrs = frozenset(attrs)
        with _translate_errors():
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            self._create_tables()

    def _create_tables(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS blobs (
                id TEXT NOT NULL,
                attr TEXT NOT NULL,
                value BLOB NOT NULL,
                PRIMARY KEY (id, attr)
            )
        """)
        self._conn.commit()

    def _check_attr(self, attr: str) -> None:
        if attr not in self._attrs:
            raise StorageError(f"Unknown attribute '{attr}'")

    def read_attribute(self, key: str, attr: str) -> bytes | None:
        self._check_attr(attr)
        with _translate_errors():
            row = self._conn.execute(
                "SELECT value FROM blobs WHERE id = ? AND attr = ?", (key, attr),
            ).fetchone()
        return bytes(row[0]) if row is not None else None

    def all_keys(self, attr: str) -> set[str]:
        self._check_attr(attr)
        with _translate_errors():
            rows = self._conn.execute(
                "SELECT id FROM blobs WHERE attr = ?", (attr,),
            ).fetchall()
        return {r[0] for r in rows}

    def all_values(self, attr: str) -> dict[str, bytes | None]:
        self._check_attr(attr)
        with _translate_errors():
            rows = self._conn.execute(
                "SELECT id, value FROM blobs WHERE attr = ?", (attr,),
            ).fetchall()
        return {r[0]: bytes(r[1]) for r in rows}

    def write(self, key: str, attr: str, value: bytes) -> bool:
        """Insert a new blob. Returns False if (key, attr) is already taken."""
        self._check_attr(attr)
        with _translate_errors():
            try:
                self._conn.execute(
                    "INSERT INTO blobs (id, attr, value) VALUES (?, ?, ?)",
                    (key, attr, value),
                )
            except sqlite3.IntegrityError:
                return False
        return True

    def update(self, key: str, attr: str, value: bytes) -> bool:
        """Replace an existing blob. Returns False if there was none."""
        self._check_attr(attr)
        with _translate_errors():
            cur = self._conn.execute(
                "UPDATE blobs SET value = ? WHERE id = ? AND attr = ?",
                (value, key, attr),
            )
        return cur.rowcount > 0

    def delete(self, key: str) -> None:
        with _translate_errors():
            self._conn.execute("DELETE FROM blobs WHERE id = ?", (key,))

    def commit(self) -> None:
        with _translate_errors():
            self._conn.commit()

    def close(self) -> None:
        with _translate_errors():
            self._conn.close()

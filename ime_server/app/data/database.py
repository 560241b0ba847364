"""Schema management and seeding for the character database."""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Generator, Iterable

from ime_server.utils.observability import get_logger

from .demo_data import CharacterRow, DEMO_CHARACTERS, iter_demo_character_rows


def _ensure_parent_directory(path: str) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


class SQLiteCharacterRepository:
    """Owns table creation and bulk loading for the ``characters`` table.

    Lookups never go through this class; they are served by the reference
    store's worker, which holds its own connection.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._logger = get_logger(__name__).bind(
            component="sqlite_repository",
            db_path=db_path,
        )

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        connection = sqlite3.connect(self.db_path)
        try:
            yield connection
            if connection.in_transaction:
                connection.commit()
        except Exception as exc:
            if connection.in_transaction:
                connection.rollback()
            self._logger.error(
                "SQLite operation failed",
                context={"error": str(exc)},
            )
            raise
        finally:
            connection.close()

    def ensure_database(self, *, seed_demo: bool = False) -> int:
        """Create missing tables and return the number of characters.

        With ``seed_demo`` an empty ``characters`` table is filled with the
        bundled demo dictionary.
        """

        if self.db_path != ":memory:":
            _ensure_parent_directory(self.db_path)

        self._logger.info("Ensuring database schema", context={"seed_demo": seed_demo})
        with self._connect() as conn:
            self._initialise_schema(conn)
            row_count = self._count(conn)
            if row_count == 0 and seed_demo:
                self._logger.info(
                    "Seeding demo dictionary",
                    context={"rows": len(DEMO_CHARACTERS)},
                )
                self._insert(conn, iter_demo_character_rows())
                row_count = self._count(conn)

        self._logger.info("Database schema verified", context={"row_count": row_count})
        return row_count

    def _initialise_schema(self, connection: sqlite3.Connection) -> None:
        cursor = connection.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS characters (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                character VARCHAR(4),
                zhuyin VARCHAR(12),
                pinyin VARCHAR(5),
                tone INTEGER,
                definition VARCHAR(50),
                freq INT
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS phrases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                character INT,
                phrase VARCHAR(50),
                definition TEXT,
                freq INT
            )
            """
        )
        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_characters_freq
            ON characters (freq DESC, id)
            """
        )
        connection.commit()

    @staticmethod
    def _count(connection: sqlite3.Connection) -> int:
        (count,) = connection.execute("SELECT COUNT(*) FROM characters").fetchone()
        return int(count)

    @staticmethod
    def _insert(connection: sqlite3.Connection, rows: Iterable[CharacterRow]) -> None:
        connection.executemany(
            """
            INSERT INTO characters (character, zhuyin, pinyin, tone, definition, freq)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            rows,
        )

    def insert_characters(self, rows: Iterable[CharacterRow]) -> int:
        """Append ``rows`` and return how many were written."""

        materialised = list(rows)
        if not materialised:
            return 0
        with self._connect() as conn:
            self._insert(conn, materialised)
        self._logger.info("Characters inserted", context={"rows": len(materialised)})
        return len(materialised)

    def count_characters(self) -> int:
        with self._connect() as conn:
            return self._count(conn)


__all__ = ["SQLiteCharacterRepository"]

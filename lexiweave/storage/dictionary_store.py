"""SQLite-backed dictionary of resolved word entries."""

from __future__ import annotations

import contextlib
import json
import sqlite3
import time
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from lexiweave import logging_manager as log_mgr
from lexiweave.engine.models import ProficiencyLevel, WordEntry
from lexiweave.errors import DuplicateEntryError, StoreError

logger = log_mgr.get_logger().getChild("storage.dictionary")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS word_list (
    id TEXT PRIMARY KEY,
    source_word TEXT NOT NULL,
    target_word TEXT NOT NULL,
    source_lang TEXT NOT NULL,
    target_lang TEXT NOT NULL,
    proficiency TEXT NOT NULL,
    frequency_rank INTEGER NOT NULL DEFAULT 0,
    part_of_speech TEXT NOT NULL DEFAULT 'other',
    variants TEXT NOT NULL DEFAULT '[]',
    pronunciation TEXT,
    provider TEXT,
    cached_at REAL
);
CREATE INDEX IF NOT EXISTS idx_word_list_source_word ON word_list (source_word);
CREATE INDEX IF NOT EXISTS idx_word_list_pair ON word_list (source_lang, target_lang);
CREATE INDEX IF NOT EXISTS idx_word_list_proficiency ON word_list (proficiency);
"""

_COLUMNS = (
    "id, source_word, target_word, source_lang, target_lang, proficiency, "
    "frequency_rank, part_of_speech, variants, pronunciation, provider, cached_at"
)


def entry_from_row(row: sqlite3.Row) -> WordEntry:
    try:
        variants = json.loads(row["variants"] or "[]")
    except (TypeError, json.JSONDecodeError):
        variants = []
    return WordEntry(
        id=row["id"],
        source_word=row["source_word"],
        target_word=row["target_word"],
        source_language=row["source_lang"],
        target_language=row["target_lang"],
        proficiency_level=ProficiencyLevel.parse(
            row["proficiency"], default=ProficiencyLevel.INTERMEDIATE
        ),
        frequency_rank=int(row["frequency_rank"] or 0),
        part_of_speech=row["part_of_speech"] or "other",
        variants=[str(item) for item in variants],
        pronunciation=row["pronunciation"],
        provider=row["provider"],
        cached_at=row["cached_at"],
    )


def _entry_params(entry: WordEntry) -> Tuple[object, ...]:
    return (
        entry.id,
        entry.source_word.lower(),
        entry.target_word,
        entry.source_language,
        entry.target_language,
        entry.proficiency_level.value,
        entry.frequency_rank,
        entry.part_of_speech,
        json.dumps(entry.variants, ensure_ascii=False),
        entry.pronunciation,
        entry.provider,
        entry.cached_at if entry.cached_at is not None else time.time(),
    )


class DictionaryStore:
    """Manage the ``word_list`` table.

    Connections are opened per operation, so one store may be shared across
    threads.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as connection:
            connection.executescript(_SCHEMA)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._db_path), timeout=10.0)
        connection.row_factory = sqlite3.Row
        try:
            connection.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.OperationalError:
            connection.execute("PRAGMA journal_mode = DELETE;")
        return connection

    @contextlib.contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            connection = self.connect()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to open dictionary at {self._db_path}: {exc}") from exc
        try:
            with connection:
                yield connection
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            raise StoreError(f"Dictionary operation failed: {exc}") from exc
        finally:
            connection.close()

    def get_by_word(
        self, word: str, source_language: str, target_language: str
    ) -> Optional[WordEntry]:
        with self._connection() as connection:
            row = connection.execute(
                f"SELECT {_COLUMNS} FROM word_list "
                "WHERE source_word = ? AND source_lang = ? AND target_lang = ? LIMIT 1",
                (word.lower(), source_language, target_language),
            ).fetchone()
        return entry_from_row(row) if row else None

    def get_by_variant(
        self, word: str, source_language: str, target_language: str
    ) -> Optional[WordEntry]:
        """Return the entry listing ``word`` among its inflected variants."""

        needle = json.dumps(word.lower(), ensure_ascii=False)
        with self._connection() as connection:
            rows = connection.execute(
                f"SELECT {_COLUMNS} FROM word_list "
                "WHERE source_lang = ? AND target_lang = ? AND instr(variants, ?) > 0",
                (source_language, target_language, needle),
            ).fetchall()
        for row in rows:
            entry = entry_from_row(row)
            if word.lower() in (variant.lower() for variant in entry.variants):
                return entry
        return None

    def insert(self, entry: WordEntry) -> None:
        """Insert ``entry``; raises :class:`DuplicateEntryError` if its id exists."""

        try:
            with self._connection() as connection:
                connection.execute(
                    f"INSERT INTO word_list ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    _entry_params(entry),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateEntryError(entry.id) from exc

    def insert_or_ignore(self, entry: WordEntry) -> bool:
        """Insert ``entry`` unless its id exists. Returns True when a row was added."""

        try:
            self.insert(entry)
        except DuplicateEntryError:
            return False
        return True

    def bulk_import(self, entries: Iterable[WordEntry]) -> int:
        """Insert many entries in one transaction, ignoring existing ids."""

        params = [_entry_params(entry) for entry in entries]
        if not params:
            return 0
        with self._connection() as connection:
            before = connection.total_changes
            connection.executemany(
                f"INSERT OR IGNORE INTO word_list ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                params,
            )
            inserted = connection.total_changes - before
        logger.info(
            "Imported %d of %d dictionary entries",
            inserted,
            len(params),
            extra={"event": "storage.dictionary.bulk_import", "console_suppress": True},
        )
        return inserted

    def get_by_level(
        self,
        level: ProficiencyLevel,
        source_language: str,
        target_language: str,
        limit: Optional[int] = None,
    ) -> List[WordEntry]:
        """Return entries of ``level`` ordered by frequency rank."""

        query = (
            f"SELECT {_COLUMNS} FROM word_list "
            "WHERE proficiency = ? AND source_lang = ? AND target_lang = ? "
            "ORDER BY frequency_rank ASC"
        )
        params: List[object] = [ProficiencyLevel.parse(level).value, source_language, target_language]
        if limit is not None:
            query += " LIMIT ?"
            params.append(int(limit))
        with self._connection() as connection:
            rows = connection.execute(query, params).fetchall()
        return [entry_from_row(row) for row in rows]

    def get_random_by_level(
        self,
        level: ProficiencyLevel,
        source_language: str,
        target_language: str,
        limit: int,
    ) -> List[WordEntry]:
        with self._connection() as connection:
            rows = connection.execute(
                f"SELECT {_COLUMNS} FROM word_list "
                "WHERE proficiency = ? AND source_lang = ? AND target_lang = ? "
                "ORDER BY RANDOM() LIMIT ?",
                (ProficiencyLevel.parse(level).value, source_language, target_language, int(limit)),
            ).fetchall()
        return [entry_from_row(row) for row in rows]

    def search(
        self,
        prefix: str,
        source_language: str,
        target_language: str,
        limit: int = 20,
    ) -> List[WordEntry]:
        """Return entries whose source or target word starts with ``prefix``."""

        escaped = prefix.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"{escaped}%"
        with self._connection() as connection:
            rows = connection.execute(
                f"SELECT {_COLUMNS} FROM word_list "
                "WHERE source_lang = ? AND target_lang = ? "
                "AND (source_word LIKE ? ESCAPE '\\' OR lower(target_word) LIKE ? ESCAPE '\\') "
                "ORDER BY frequency_rank ASC LIMIT ?",
                (source_language, target_language, pattern, pattern, int(limit)),
            ).fetchall()
        return [entry_from_row(row) for row in rows]

    def count(
        self,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> int:
        clauses: List[str] = []
        params: List[object] = []
        if source_language:
            clauses.append("source_lang = ?")
            params.append(source_language)
        if target_language:
            clauses.append("target_lang = ?")
            params.append(target_language)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connection() as connection:
            row = connection.execute(f"SELECT COUNT(*) FROM word_list{where}", params).fetchone()
        return int(row[0])

    def count_by_level(self, source_language: str, target_language: str) -> Dict[str, int]:
        counts = {level.value: 0 for level in ProficiencyLevel}
        with self._connection() as connection:
            rows = connection.execute(
                "SELECT proficiency, COUNT(*) AS total FROM word_list "
                "WHERE source_lang = ? AND target_lang = ? GROUP BY proficiency",
                (source_language, target_language),
            ).fetchall()
        for row in rows:
            counts[row["proficiency"]] = int(row["total"])
        return counts

    def pair_counts(self) -> Dict[str, int]:
        """Return entry totals keyed by ``"source-target"``."""

        with self._connection() as connection:
            rows = connection.execute(
                "SELECT source_lang, target_lang, COUNT(*) AS total FROM word_list "
                "GROUP BY source_lang, target_lang ORDER BY source_lang, target_lang"
            ).fetchall()
        return {f"{row['source_lang']}-{row['target_lang']}": int(row["total"]) for row in rows}

    def delete_pair(
        self,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> int:
        clauses: List[str] = []
        params: List[object] = []
        if source_language:
            clauses.append("source_lang = ?")
            params.append(source_language)
        if target_language:
            clauses.append("target_lang = ?")
            params.append(target_language)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connection() as connection:
            cursor = connection.execute(f"DELETE FROM word_list{where}", params)
            removed = cursor.rowcount
        logger.info(
            "Removed %d dictionary entries",
            removed,
            extra={"event": "storage.dictionary.cleared", "language_pair": f"{source_language}-{target_language}"},
        )
        return removed


__all__ = ["DictionaryStore", "entry_from_row"]

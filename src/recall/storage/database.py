"""SQLite database for the local store.

Owns the single connection, the schema, and the all-or-nothing
transaction wrapper used by every repository.
"""

import logging
import sqlite3
import threading
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..errors import PersistenceError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS contacts (
    id TEXT PRIMARY KEY,
    first_name TEXT NOT NULL CHECK (length(trim(first_name)) > 0),
    last_name TEXT,
    nickname TEXT,
    tags TEXT NOT NULL DEFAULT '[]',
    highlights TEXT NOT NULL DEFAULT '[]',
    ai_summary TEXT,
    ice_breakers TEXT,
    phone TEXT,
    email TEXT,
    birthday_day INTEGER,
    birthday_month INTEGER,
    birthday_year INTEGER,
    last_contact_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    contact_id TEXT NOT NULL,
    title TEXT,
    audio_uri TEXT,
    audio_duration_ms INTEGER,
    transcription TEXT,
    summary TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS facts (
    id TEXT PRIMARY KEY,
    contact_id TEXT NOT NULL,
    fact_type TEXT NOT NULL,
    fact_key TEXT NOT NULL,
    fact_value TEXT NOT NULL,
    source_note_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE,
    FOREIGN KEY (source_note_id) REFERENCES notes(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS hot_topics (
    id TEXT PRIMARY KEY,
    contact_id TEXT NOT NULL,
    title TEXT NOT NULL,
    context TEXT,
    resolution TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    source_note_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    resolved_at TEXT,
    FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE,
    FOREIGN KEY (source_note_id) REFERENCES notes(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    contact_id TEXT NOT NULL,
    description TEXT NOT NULL,
    event_date TEXT,
    is_shared INTEGER NOT NULL DEFAULT 0,
    source_note_id TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE,
    FOREIGN KEY (source_note_id) REFERENCES notes(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    contact_id TEXT NOT NULL,
    title TEXT NOT NULL,
    event_date TEXT NOT NULL,
    source_note_id TEXT,
    notified_at TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE,
    FOREIGN KEY (source_note_id) REFERENCES notes(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS groups (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS contact_groups (
    contact_id TEXT NOT NULL,
    group_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (contact_id, group_id),
    FOREIGN KEY (contact_id) REFERENCES contacts(id) ON DELETE CASCADE,
    FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_contacts_last_contact ON contacts(last_contact_at DESC);
CREATE INDEX IF NOT EXISTS idx_notes_contact ON notes(contact_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_facts_contact ON facts(contact_id);
CREATE INDEX IF NOT EXISTS idx_facts_source_note ON facts(source_note_id);
CREATE INDEX IF NOT EXISTS idx_hot_topics_contact ON hot_topics(contact_id, status);
CREATE INDEX IF NOT EXISTS idx_memories_contact ON memories(contact_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_events_contact ON events(contact_id);
CREATE INDEX IF NOT EXISTS idx_events_date ON events(event_date);
CREATE INDEX IF NOT EXISTS idx_contact_groups_group ON contact_groups(group_id);
"""

TABLES = (
    "contacts",
    "notes",
    "facts",
    "hot_topics",
    "memories",
    "events",
    "groups",
    "contact_groups",
)


def new_id() -> str:
    """Generate a random, globally unique identifier."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Current UTC wall-clock time as ISO-8601."""
    return datetime.now(UTC).isoformat()


class Database:
    """SQLite database shared by the repositories.

    Uses WAL mode and enforces foreign keys. Statements run inside
    transaction() are committed together or not at all.
    """

    def __init__(self, db_path: Path | str = ":memory:") -> None:
        """Open (and create if needed) the database.

        Args:
            db_path: Path to the SQLite file, or ":memory:".
        """
        self._db_path = str(db_path)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self._depth = 0

        try:
            self._conn = sqlite3.connect(
                self._db_path, check_same_thread=False, isolation_level=None
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to open database {self._db_path}: {e}") from e

        logger.debug(f"Opened database at {self._db_path}")

    @property
    def path(self) -> str:
        """Database location."""
        return self._db_path

    @property
    def in_transaction(self) -> bool:
        """True while a transaction() block is open."""
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Run a block of statements atomically.

        Nested blocks join the outermost transaction. Any exception rolls
        everything back and propagates; sqlite failures surface as
        PersistenceError.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._run("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._rollback()
                raise
            else:
                self._depth -= 1
                if outermost:
                    try:
                        self._conn.execute("COMMIT")
                    except sqlite3.Error as e:
                        self._rollback()
                        raise PersistenceError(f"Commit failed: {e}") from e

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Execute a write statement.

        Returns:
            Number of rows affected.
        """
        with self._lock:
            cursor = self._run(sql, params)
            return cursor.rowcount

    def query(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Run a SELECT and return all rows."""
        with self._lock:
            return self._run(sql, params).fetchall()

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        """Run a SELECT and return the first row, if any."""
        with self._lock:
            return self._run(sql, params).fetchone()

    def counts(self) -> dict[str, int]:
        """Row count per table."""
        return {
            table: self.query_one(f"SELECT COUNT(*) FROM {table}")[0]  # noqa: S608
            for table in TABLES
        }

    def export(self) -> dict[str, Any]:
        """Dump every table to JSON-serialisable data."""
        return {
            "version": 1,
            "exported_at": now_iso(),
            "data": {
                table: [dict(row) for row in self.query(f"SELECT * FROM {table}")]  # noqa: S608
                for table in TABLES
            },
        }

    def is_wal_mode_enabled(self) -> bool:
        """Check if WAL mode is enabled."""
        row = self.query_one("PRAGMA journal_mode")
        return row is not None and str(row[0]).lower() == "wal"

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def _run(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, tuple(params))
        except sqlite3.Error as e:
            logger.error(f"Database error: {e}")
            raise PersistenceError(str(e)) from e

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")


def build_update(
    fields: dict[str, Any],
    allowed: dict[str, str],
) -> tuple[list[str], list[Any]]:
    """Translate keyword fields into SET clauses.

    Args:
        fields: Attribute name -> new value.
        allowed: Attribute name -> column name.

    Returns:
        (clauses, values) for the fields present.

    Raises:
        ValueError: If a field is not updatable.
    """
    unknown = set(fields) - set(allowed)
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")

    clauses = [f"{allowed[name]} = ?" for name in fields]
    return clauses, list(fields.values())


__all__ = [
    "Database",
    "SCHEMA",
    "TABLES",
    "build_update",
    "new_id",
    "now_iso",
]

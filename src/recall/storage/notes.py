"""Repositories for notes and the records derived from them.

Facts, hot topics and memories keep a nullable back-reference to the
note they came from; deleting the note clears the reference and keeps
the derived record.
"""

import logging
from datetime import datetime
from typing import Any

from .database import Database, build_update, new_id, now_iso
from .models import Fact, FactType, HotTopic, HotTopicStatus, Memory, Note

logger = logging.getLogger(__name__)


class NoteRepository:
    """Repository for voice notes."""

    _UPDATABLE = {
        "title": "title",
        "transcription": "transcription",
        "summary": "summary",
        "audio_uri": "audio_uri",
        "audio_duration_ms": "audio_duration_ms",
    }

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        contact_id: str,
        transcription: str | None = None,
        title: str | None = None,
        summary: str | None = None,
        audio_uri: str | None = None,
        audio_duration_ms: int | None = None,
        created_at: datetime | None = None,
    ) -> Note:
        """Create a note attached to a contact."""
        note_id = new_id()
        created = created_at.isoformat() if created_at else now_iso()

        with self._db.transaction():
            self._db.execute(
                """
                INSERT INTO notes (
                    id, contact_id, title, audio_uri, audio_duration_ms,
                    transcription, summary, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    note_id,
                    contact_id,
                    title,
                    audio_uri,
                    audio_duration_ms,
                    transcription,
                    summary,
                    created,
                    created,
                ),
            )

        return self._require(note_id)

    def get(self, note_id: str) -> Note | None:
        """Get a note by ID."""
        row = self._db.query_one("SELECT * FROM notes WHERE id = ?", (note_id,))
        return Note.from_row(row) if row else None

    def list_by_owner(self, contact_id: str) -> list[Note]:
        """Notes for a contact, newest first."""
        rows = self._db.query(
            "SELECT * FROM notes WHERE contact_id = ? ORDER BY created_at DESC",
            (contact_id,),
        )
        return [Note.from_row(row) for row in rows]

    def update(self, note_id: str, **fields: Any) -> Note:
        """Update note fields; created_at and contact_id never change."""
        clauses, values = build_update(fields, self._UPDATABLE)
        clauses.append("updated_at = ?")
        values.append(now_iso())

        with self._db.transaction():
            changed = self._db.execute(
                f"UPDATE notes SET {', '.join(clauses)} WHERE id = ?",  # noqa: S608
                (*values, note_id),
            )
        if not changed:
            raise KeyError(note_id)
        return self._require(note_id)

    def delete(self, note_id: str) -> bool:
        """Delete a note. Derived records survive with source_note_id cleared."""
        with self._db.transaction():
            deleted = self._db.execute("DELETE FROM notes WHERE id = ?", (note_id,))
        return deleted > 0

    def _require(self, note_id: str) -> Note:
        note = self.get(note_id)
        if note is None:
            raise KeyError(note_id)
        return note


class FactRepository:
    """Repository for structured facts."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        contact_id: str,
        fact_type: FactType | str,
        fact_key: str,
        fact_value: str,
        source_note_id: str | None = None,
    ) -> Fact:
        """Create a fact.

        Unknown fact types are stored as custom.
        """
        if isinstance(fact_type, str):
            fact_type = FactType.parse(fact_type)

        fact_id = new_id()
        now = now_iso()
        with self._db.transaction():
            self._db.execute(
                """
                INSERT INTO facts (
                    id, contact_id, fact_type, fact_key, fact_value,
                    source_note_id, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (fact_id, contact_id, fact_type.value, fact_key, fact_value, source_note_id, now, now),
            )

        return self._require(fact_id)

    def get(self, fact_id: str) -> Fact | None:
        """Get a fact by ID."""
        row = self._db.query_one("SELECT * FROM facts WHERE id = ?", (fact_id,))
        return Fact.from_row(row) if row else None

    def list_by_owner(self, contact_id: str) -> list[Fact]:
        """Facts for a contact in creation order."""
        rows = self._db.query(
            "SELECT * FROM facts WHERE contact_id = ? ORDER BY created_at",
            (contact_id,),
        )
        return [Fact.from_row(row) for row in rows]

    def find(self, contact_id: str, fact_type: FactType | str, fact_key: str) -> Fact | None:
        """Find a contact's fact by type and key (key compared case-insensitively)."""
        if isinstance(fact_type, str):
            fact_type = FactType.parse(fact_type)
        row = self._db.query_one(
            """
            SELECT * FROM facts
            WHERE contact_id = ? AND fact_type = ? AND fact_key = ? COLLATE NOCASE
            ORDER BY created_at DESC
            """,
            (contact_id, fact_type.value, fact_key),
        )
        return Fact.from_row(row) if row else None

    def update(self, fact_id: str, **fields: Any) -> Fact:
        """Change a fact's value.

        Raises:
            ValueError: If anything other than fact_value is given.
            KeyError: If the fact does not exist.
        """
        clauses, values = build_update(fields, {"fact_value": "fact_value"})
        if not clauses:
            raise ValueError("fact_value is required")
        clauses.append("updated_at = ?")
        values.append(now_iso())

        with self._db.transaction():
            changed = self._db.execute(
                f"UPDATE facts SET {', '.join(clauses)} WHERE id = ?",  # noqa: S608
                (*values, fact_id),
            )
        if not changed:
            raise KeyError(fact_id)
        return self._require(fact_id)

    def delete(self, fact_id: str) -> bool:
        """Delete a fact."""
        with self._db.transaction():
            deleted = self._db.execute("DELETE FROM facts WHERE id = ?", (fact_id,))
        return deleted > 0

    def _require(self, fact_id: str) -> Fact:
        fact = self.get(fact_id)
        if fact is None:
            raise KeyError(fact_id)
        return fact


class HotTopicRepository:
    """Repository for hot topics."""

    _UPDATABLE = {"title": "title", "context": "context"}

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        contact_id: str,
        title: str,
        context: str | None = None,
        source_note_id: str | None = None,
    ) -> HotTopic:
        """Create an active hot topic."""
        topic_id = new_id()
        now = now_iso()
        with self._db.transaction():
            self._db.execute(
                """
                INSERT INTO hot_topics (
                    id, contact_id, title, context, status, source_note_id,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    topic_id,
                    contact_id,
                    title,
                    context,
                    HotTopicStatus.ACTIVE.value,
                    source_note_id,
                    now,
                    now,
                ),
            )
        return self._require(topic_id)

    def get(self, topic_id: str) -> HotTopic | None:
        """Get a hot topic by ID."""
        row = self._db.query_one("SELECT * FROM hot_topics WHERE id = ?", (topic_id,))
        return HotTopic.from_row(row) if row else None

    def list_by_owner(self, contact_id: str, include_resolved: bool = False) -> list[HotTopic]:
        """Hot topics for a contact, newest first.

        Args:
            contact_id: Owning contact.
            include_resolved: Also return resolved topics.
        """
        sql = "SELECT * FROM hot_topics WHERE contact_id = ?"
        params: list[Any] = [contact_id]
        if not include_resolved:
            sql += " AND status = ?"
            params.append(HotTopicStatus.ACTIVE.value)
        sql += " ORDER BY created_at DESC"
        return [HotTopic.from_row(row) for row in self._db.query(sql, params)]

    def update(self, topic_id: str, **fields: Any) -> HotTopic:
        """Update title or context."""
        clauses, values = build_update(fields, self._UPDATABLE)
        clauses.append("updated_at = ?")
        values.append(now_iso())

        with self._db.transaction():
            changed = self._db.execute(
                f"UPDATE hot_topics SET {', '.join(clauses)} WHERE id = ?",  # noqa: S608
                (*values, topic_id),
            )
        if not changed:
            raise KeyError(topic_id)
        return self._require(topic_id)

    def resolve(self, topic_id: str, resolution: str | None = None) -> HotTopic:
        """Mark a topic resolved."""
        now = now_iso()
        with self._db.transaction():
            changed = self._db.execute(
                """
                UPDATE hot_topics
                SET status = ?, resolution = ?, resolved_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (HotTopicStatus.RESOLVED.value, resolution, now, now, topic_id),
            )
        if not changed:
            raise KeyError(topic_id)
        return self._require(topic_id)

    def reopen(self, topic_id: str) -> HotTopic:
        """Move a resolved topic back to active."""
        with self._db.transaction():
            changed = self._db.execute(
                """
                UPDATE hot_topics
                SET status = ?, resolution = NULL, resolved_at = NULL, updated_at = ?
                WHERE id = ?
                """,
                (HotTopicStatus.ACTIVE.value, now_iso(), topic_id),
            )
        if not changed:
            raise KeyError(topic_id)
        return self._require(topic_id)

    def delete(self, topic_id: str) -> bool:
        """Delete a hot topic."""
        with self._db.transaction():
            deleted = self._db.execute("DELETE FROM hot_topics WHERE id = ?", (topic_id,))
        return deleted > 0

    def _require(self, topic_id: str) -> HotTopic:
        topic = self.get(topic_id)
        if topic is None:
            raise KeyError(topic_id)
        return topic


class MemoryRepository:
    """Repository for shared memories."""

    _UPDATABLE = {"description": "description", "event_date": "event_date", "is_shared": "is_shared"}

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        contact_id: str,
        description: str,
        event_date: str | None = None,
        is_shared: bool = False,
        source_note_id: str | None = None,
    ) -> Memory:
        """Create a memory."""
        memory_id = new_id()
        with self._db.transaction():
            self._db.execute(
                """
                INSERT INTO memories (
                    id, contact_id, description, event_date, is_shared,
                    source_note_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    memory_id,
                    contact_id,
                    description,
                    event_date,
                    int(is_shared),
                    source_note_id,
                    now_iso(),
                ),
            )
        return self._require(memory_id)

    def get(self, memory_id: str) -> Memory | None:
        """Get a memory by ID."""
        row = self._db.query_one("SELECT * FROM memories WHERE id = ?", (memory_id,))
        return Memory.from_row(row) if row else None

    def list_by_owner(self, contact_id: str) -> list[Memory]:
        """Memories for a contact, newest first."""
        rows = self._db.query(
            "SELECT * FROM memories WHERE contact_id = ? ORDER BY created_at DESC",
            (contact_id,),
        )
        return [Memory.from_row(row) for row in rows]

    def update(self, memory_id: str, **fields: Any) -> Memory:
        """Update description, date or shared flag.

        Memories carry no updated_at column.
        """
        if "is_shared" in fields:
            fields["is_shared"] = int(bool(fields["is_shared"]))
        clauses, values = build_update(fields, self._UPDATABLE)
        if not clauses:
            raise ValueError("Nothing to update")

        with self._db.transaction():
            changed = self._db.execute(
                f"UPDATE memories SET {', '.join(clauses)} WHERE id = ?",  # noqa: S608
                (*values, memory_id),
            )
        if not changed:
            raise KeyError(memory_id)
        return self._require(memory_id)

    def delete(self, memory_id: str) -> bool:
        """Delete a memory."""
        with self._db.transaction():
            deleted = self._db.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
        return deleted > 0

    def _require(self, memory_id: str) -> Memory:
        memory = self.get(memory_id)
        if memory is None:
            raise KeyError(memory_id)
        return memory


__all__ = [
    "FactRepository",
    "HotTopicRepository",
    "MemoryRepository",
    "NoteRepository",
]

"""Local store for Recall.

SQLite-backed repositories for contacts and everything attached to them.
"""

from .contacts import ContactRepository
from .database import Database
from .events import EventRepository, parse_extracted_date
from .groups import GroupRepository
from .models import (
    Contact,
    ContactDetail,
    Event,
    Fact,
    FactType,
    Group,
    HotTopic,
    HotTopicStatus,
    Memory,
    Note,
)
from .notes import FactRepository, HotTopicRepository, MemoryRepository, NoteRepository


class Store:
    """All repositories sharing one database."""

    def __init__(self, db: Database) -> None:
        self.db = db
        self.contacts = ContactRepository(db)
        self.notes = NoteRepository(db)
        self.facts = FactRepository(db)
        self.hot_topics = HotTopicRepository(db)
        self.memories = MemoryRepository(db)
        self.events = EventRepository(db)
        self.groups = GroupRepository(db)

    def close(self) -> None:
        """Close the underlying database."""
        self.db.close()


__all__ = [
    "Contact",
    "ContactDetail",
    "ContactRepository",
    "Database",
    "Event",
    "EventRepository",
    "Fact",
    "FactRepository",
    "FactType",
    "Group",
    "GroupRepository",
    "HotTopic",
    "HotTopicRepository",
    "HotTopicStatus",
    "Memory",
    "MemoryRepository",
    "Note",
    "NoteRepository",
    "Store",
    "parse_extracted_date",
]

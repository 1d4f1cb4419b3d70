"""Data models for the local store.

Row <-> dataclass conversion for contacts, notes, facts, hot topics,
memories, events and groups.
"""

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any


class FactType(Enum):
    """Closed set of structured fact kinds."""

    JOB = "job"
    COMPANY = "company"
    CITY = "city"
    RELATIONSHIP = "relationship"
    BIRTHDAY = "birthday"
    INTEREST = "interest"
    PHONE = "phone"
    EMAIL = "email"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str) -> "FactType":
        """Parse a fact type, mapping unknown labels to CUSTOM."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.CUSTOM


class HotTopicStatus(Enum):
    """Lifecycle of a conversational thread."""

    ACTIVE = "active"
    RESOLVED = "resolved"


def utc_now() -> datetime:
    """Current wall-clock time in UTC."""
    return datetime.now(UTC)


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _json_list(value: str | None) -> list[str]:
    if not value:
        return []
    return list(json.loads(value))


@dataclass
class Contact:
    """A person record.

    Attributes:
        id: Client-generated identifier, immutable
        first_name: Required, non-empty
        last_name: Optional family name
        nickname: Optional nickname
        tags: Free labels
        highlights: Short highlight strings
        ai_summary: Summary written by the enrichment service
        ice_breakers: Suggested conversation openers
        phone: Phone number
        email: Email address
        birthday_day: Day of birth
        birthday_month: Month of birth
        birthday_year: Year of birth
        last_contact_at: Last time a note was attached
        created_at: Creation timestamp
        updated_at: Last mutation timestamp
    """

    id: str
    first_name: str
    last_name: str | None = None
    nickname: str | None = None
    tags: list[str] = field(default_factory=list)
    highlights: list[str] = field(default_factory=list)
    ai_summary: str | None = None
    ice_breakers: list[str] | None = None
    phone: str | None = None
    email: str | None = None
    birthday_day: int | None = None
    birthday_month: int | None = None
    birthday_year: int | None = None
    last_contact_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def display_name(self) -> str:
        """First and last name, or first name alone."""
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Contact":
        """Create from a contacts row."""
        ice_breakers = row["ice_breakers"]
        return cls(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            nickname=row["nickname"],
            tags=_json_list(row["tags"]),
            highlights=_json_list(row["highlights"]),
            ai_summary=row["ai_summary"],
            ice_breakers=json.loads(ice_breakers) if ice_breakers else None,
            phone=row["phone"],
            email=row["email"],
            birthday_day=row["birthday_day"],
            birthday_month=row["birthday_month"],
            birthday_year=row["birthday_year"],
            last_contact_at=_from_iso(row["last_contact_at"]),
            created_at=_from_iso(row["created_at"]) or utc_now(),
            updated_at=_from_iso(row["updated_at"]) or utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "nickname": self.nickname,
            "tags": self.tags,
            "highlights": self.highlights,
            "ai_summary": self.ai_summary,
            "ice_breakers": self.ice_breakers,
            "phone": self.phone,
            "email": self.email,
            "birthday_day": self.birthday_day,
            "birthday_month": self.birthday_month,
            "birthday_year": self.birthday_year,
            "last_contact_at": _to_iso(self.last_contact_at),
            "created_at": _to_iso(self.created_at),
            "updated_at": _to_iso(self.updated_at),
        }


@dataclass
class Note:
    """A voice note attached to one contact."""

    id: str
    contact_id: str
    title: str | None = None
    audio_uri: str | None = None
    audio_duration_ms: int | None = None
    transcription: str | None = None
    summary: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Note":
        """Create from a notes row."""
        created_at = _from_iso(row["created_at"]) or utc_now()
        return cls(
            id=row["id"],
            contact_id=row["contact_id"],
            title=row["title"],
            audio_uri=row["audio_uri"],
            audio_duration_ms=row["audio_duration_ms"],
            transcription=row["transcription"],
            summary=row["summary"],
            created_at=created_at,
            updated_at=_from_iso(row["updated_at"]) or created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "title": self.title,
            "audio_uri": self.audio_uri,
            "audio_duration_ms": self.audio_duration_ms,
            "transcription": self.transcription,
            "summary": self.summary,
            "created_at": _to_iso(self.created_at),
            "updated_at": _to_iso(self.updated_at),
        }


@dataclass
class Fact:
    """A structured attribute about a contact."""

    id: str
    contact_id: str
    fact_type: FactType
    fact_key: str
    fact_value: str
    source_note_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Fact":
        """Create from a facts row."""
        return cls(
            id=row["id"],
            contact_id=row["contact_id"],
            fact_type=FactType.parse(row["fact_type"]),
            fact_key=row["fact_key"],
            fact_value=row["fact_value"],
            source_note_id=row["source_note_id"],
            created_at=_from_iso(row["created_at"]) or utc_now(),
            updated_at=_from_iso(row["updated_at"]) or utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "fact_type": self.fact_type.value,
            "fact_key": self.fact_key,
            "fact_value": self.fact_value,
            "source_note_id": self.source_note_id,
            "created_at": _to_iso(self.created_at),
            "updated_at": _to_iso(self.updated_at),
        }


@dataclass
class HotTopic:
    """A standing conversational thread with a contact."""

    id: str
    contact_id: str
    title: str
    context: str | None = None
    resolution: str | None = None
    status: HotTopicStatus = HotTopicStatus.ACTIVE
    source_note_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    resolved_at: datetime | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "HotTopic":
        """Create from a hot_topics row."""
        return cls(
            id=row["id"],
            contact_id=row["contact_id"],
            title=row["title"],
            context=row["context"],
            resolution=row["resolution"],
            status=HotTopicStatus(row["status"]),
            source_note_id=row["source_note_id"],
            created_at=_from_iso(row["created_at"]) or utc_now(),
            updated_at=_from_iso(row["updated_at"]) or utc_now(),
            resolved_at=_from_iso(row["resolved_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "title": self.title,
            "context": self.context,
            "resolution": self.resolution,
            "status": self.status.value,
            "source_note_id": self.source_note_id,
            "created_at": _to_iso(self.created_at),
            "updated_at": _to_iso(self.updated_at),
            "resolved_at": _to_iso(self.resolved_at),
        }


@dataclass
class Memory:
    """A dated moment shared with (or told by) a contact."""

    id: str
    contact_id: str
    description: str
    event_date: str | None = None
    is_shared: bool = False
    source_note_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Memory":
        """Create from a memories row."""
        return cls(
            id=row["id"],
            contact_id=row["contact_id"],
            description=row["description"],
            event_date=row["event_date"],
            is_shared=bool(row["is_shared"]),
            source_note_id=row["source_note_id"],
            created_at=_from_iso(row["created_at"]) or utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "description": self.description,
            "event_date": self.event_date,
            "is_shared": self.is_shared,
            "source_note_id": self.source_note_id,
            "created_at": _to_iso(self.created_at),
        }


@dataclass
class Event:
    """An upcoming dated occurrence related to a contact."""

    id: str
    contact_id: str
    title: str
    event_date: date
    source_note_id: str | None = None
    notified_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Event":
        """Create from an events row."""
        return cls(
            id=row["id"],
            contact_id=row["contact_id"],
            title=row["title"],
            event_date=date.fromisoformat(row["event_date"]),
            source_note_id=row["source_note_id"],
            notified_at=_from_iso(row["notified_at"]),
            created_at=_from_iso(row["created_at"]) or utc_now(),
        )


@dataclass
class Group:
    """A named collection of contacts."""

    id: str
    name: str
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Group":
        """Create from a groups row."""
        return cls(
            id=row["id"],
            name=row["name"],
            created_at=_from_iso(row["created_at"]) or utc_now(),
            updated_at=_from_iso(row["updated_at"]) or utc_now(),
        )


@dataclass
class ContactDetail:
    """A contact together with everything attached to it."""

    contact: Contact
    facts: list[Fact] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    hot_topics: list[HotTopic] = field(default_factory=list)
    memories: list[Memory] = field(default_factory=list)

    @property
    def id(self) -> str:
        """Contact identifier."""
        return self.contact.id

    @property
    def ai_summary(self) -> str | None:
        """Summary written by the enrichment service, if any."""
        return self.contact.ai_summary

    @property
    def fact_count(self) -> int:
        """Number of facts."""
        return len(self.facts)

    @property
    def hot_topic_count(self) -> int:
        """Number of hot topics."""
        return len(self.hot_topics)

    @property
    def has_enrichable_data(self) -> bool:
        """True if there is anything for the summarizer to work on."""
        return self.fact_count > 0 or self.hot_topic_count > 0


__all__ = [
    "Contact",
    "ContactDetail",
    "Event",
    "Fact",
    "FactType",
    "Group",
    "HotTopic",
    "HotTopicStatus",
    "Memory",
    "Note",
    "utc_now",
]

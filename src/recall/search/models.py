"""Search request and result models.

Payloads use the camelCase keys expected by the ranking endpoint.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SourceType(Enum):
    """Kind of evidence a search result points at."""

    FACT = "fact"
    MEMORY = "memory"
    NOTE = "note"


@dataclass
class FactInput:
    """A fact offered to the ranker."""

    id: str
    contact_id: str
    contact_name: str
    fact_type: str
    fact_key: str
    fact_value: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "contactId": self.contact_id,
            "contactName": self.contact_name,
            "factType": self.fact_type,
            "factKey": self.fact_key,
            "factValue": self.fact_value,
        }


@dataclass
class MemoryInput:
    """A memory offered to the ranker."""

    id: str
    contact_id: str
    contact_name: str
    description: str
    event_date: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "contactId": self.contact_id,
            "contactName": self.contact_name,
            "description": self.description,
        }
        if self.event_date:
            payload["eventDate"] = self.event_date
        return payload


@dataclass
class NoteInput:
    """A transcribed note offered to the ranker."""

    id: str
    contact_id: str
    contact_name: str
    transcription: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "contactId": self.contact_id,
            "contactName": self.contact_name,
            "transcription": self.transcription,
        }


@dataclass
class SearchRequest:
    """A natural-language query plus the evidence it may be answered from."""

    query: str
    facts: list[FactInput] = field(default_factory=list)
    memories: list[MemoryInput] = field(default_factory=list)
    notes: list[NoteInput] = field(default_factory=list)
    language: str | None = None

    @property
    def has_data(self) -> bool:
        """True if there is any evidence to rank."""
        return bool(self.facts or self.memories or self.notes)

    def to_payload(self) -> dict[str, Any]:
        """Serialise for POST /api/search."""
        payload: dict[str, Any] = {
            "query": self.query,
            "facts": [f.to_payload() for f in self.facts],
            "memories": [m.to_payload() for m in self.memories],
            "notes": [n.to_payload() for n in self.notes],
        }
        if self.language:
            payload["language"] = self.language
        return payload


@dataclass
class SemanticSearchResult:
    """One ranked answer returned by the remote index.

    Attributes:
        contact_id: Contact the answer is about
        contact_name: Display name of that contact
        answer: Short answer text
        reference: Quoted evidence
        source_type: Kind of evidence
        source_id: ID of the fact, memory or note
        relevance_score: 0-100, higher is better
    """

    contact_id: str
    contact_name: str
    answer: str
    reference: str
    source_type: SourceType
    source_id: str
    relevance_score: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SemanticSearchResult":
        """Create from an API result object."""
        return cls(
            contact_id=data["contactId"],
            contact_name=data["contactName"],
            answer=data["answer"],
            reference=data.get("reference", ""),
            source_type=SourceType(data["sourceType"]),
            source_id=data["sourceId"],
            relevance_score=float(data.get("relevanceScore", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "contactId": self.contact_id,
            "contactName": self.contact_name,
            "answer": self.answer,
            "reference": self.reference,
            "sourceType": self.source_type.value,
            "sourceId": self.source_id,
            "relevanceScore": self.relevance_score,
        }


__all__ = [
    "FactInput",
    "MemoryInput",
    "NoteInput",
    "SearchRequest",
    "SemanticSearchResult",
    "SourceType",
]

"""Data models for fact extraction results.

Parsed from the camelCase JSON produced by the extraction backends.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import ExtractionError
from ..storage.models import FactType


class FactAction(Enum):
    """Whether an extracted fact is new or replaces a known one."""

    ADD = "add"
    UPDATE = "update"


@dataclass
class IdentifiedContact:
    """Who the extractor thinks the note is about.

    Attributes:
        id: Matching existing contact ID, or None for a new person
        first_name: First name heard in the note
        last_name: Family name if mentioned
        confidence: "high", "medium" or "low"
        needs_disambiguation: Several existing contacts match
        suggested_matches: Candidate IDs when disambiguation is needed
        suggested_nickname: Nickname hint for new contacts
    """

    id: str | None
    first_name: str
    last_name: str | None = None
    confidence: str = "medium"
    needs_disambiguation: bool = False
    suggested_matches: list[str] = field(default_factory=list)
    suggested_nickname: str | None = None


@dataclass
class ExtractedFact:
    """A fact proposed by the extractor."""

    fact_type: FactType
    fact_key: str
    fact_value: str
    action: FactAction = FactAction.ADD
    previous_value: str | None = None


@dataclass
class ExtractedHotTopic:
    """A new conversational thread."""

    title: str
    context: str | None = None


@dataclass
class ResolvedTopic:
    """An existing hot topic the note closes."""

    id: str
    resolution: str | None = None


@dataclass
class ExtractedMemory:
    """A shared moment mentioned in the note."""

    description: str
    event_date: str | None = None
    is_shared: bool = False


@dataclass
class ExtractedEvent:
    """An upcoming dated occurrence; date is DD/MM/YYYY as emitted."""

    title: str
    event_date: str


@dataclass
class ExtractionResult:
    """Everything extracted from one transcript."""

    facts: list[ExtractedFact] = field(default_factory=list)
    hot_topics: list[ExtractedHotTopic] = field(default_factory=list)
    resolved_topics: list[ResolvedTopic] = field(default_factory=list)
    memories: list[ExtractedMemory] = field(default_factory=list)
    events: list[ExtractedEvent] = field(default_factory=list)
    suggested_groups: list[str] = field(default_factory=list)
    note_title: str | None = None
    summary: str | None = None
    key_points: list[str] = field(default_factory=list)
    contact: IdentifiedContact | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractionResult":
        """Parse an extraction JSON object.

        Raises:
            ExtractionError: If the object is not shaped like an extraction.
        """
        if not isinstance(data, dict):
            raise ExtractionError("Extraction result must be a JSON object")

        try:
            note = data.get("note") or {}
            return cls(
                facts=[_parse_fact(f) for f in data.get("facts") or []],
                hot_topics=[
                    ExtractedHotTopic(title=_require_str(t, "title"), context=t.get("context"))
                    for t in data.get("hotTopics") or []
                ],
                resolved_topics=[
                    ResolvedTopic(id=_require_str(t, "id"), resolution=t.get("resolution"))
                    for t in data.get("resolvedTopics") or []
                ],
                memories=[
                    ExtractedMemory(
                        description=_require_str(m, "description"),
                        event_date=m.get("eventDate"),
                        is_shared=bool(m.get("isShared", False)),
                    )
                    for m in data.get("memories") or []
                ],
                events=[
                    ExtractedEvent(
                        title=_require_str(e, "title"),
                        event_date=_require_str(e, "eventDate"),
                    )
                    for e in data.get("events") or []
                ],
                suggested_groups=[
                    _require_str(g, "name") if isinstance(g, dict) else str(g)
                    for g in data.get("suggestedGroups") or []
                ],
                note_title=data.get("noteTitle"),
                summary=note.get("summary"),
                key_points=list(note.get("keyPoints") or []),
                contact=_parse_contact(data.get("contactIdentified")),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ExtractionError(f"Malformed extraction result: {e}") from e


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _parse_fact(data: dict[str, Any]) -> ExtractedFact:
    action = str(data.get("action") or "add").lower()
    return ExtractedFact(
        fact_type=FactType.parse(str(data.get("factType") or "custom")),
        fact_key=_require_str(data, "factKey"),
        fact_value=str(data["factValue"]),
        action=FactAction.UPDATE if action == "update" else FactAction.ADD,
        previous_value=data.get("previousValue"),
    )


def _parse_contact(data: dict[str, Any] | None) -> IdentifiedContact | None:
    if not data:
        return None
    return IdentifiedContact(
        id=data.get("id"),
        first_name=data.get("firstName") or "",
        last_name=data.get("lastName"),
        confidence=data.get("confidence") or "medium",
        needs_disambiguation=bool(data.get("needsDisambiguation", False)),
        suggested_matches=list(data.get("suggestedMatches") or []),
        suggested_nickname=data.get("suggestedNickname"),
    )


__all__ = [
    "ExtractedEvent",
    "ExtractedFact",
    "ExtractedHotTopic",
    "ExtractedMemory",
    "ExtractionResult",
    "FactAction",
    "IdentifiedContact",
    "ResolvedTopic",
]

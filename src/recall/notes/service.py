"""Note service for committing extracted notes.

Writes a note and everything extracted from it in one transaction.
"""

import logging
from dataclasses import dataclass, field

from ..storage import Store
from ..storage.events import parse_extracted_date
from ..storage.models import Event, Fact, HotTopic, Memory, Note
from .extractor import ExtractionContext
from .models import ExtractionResult, FactAction

logger = logging.getLogger(__name__)


@dataclass
class CommitResult:
    """Records written by one commit."""

    note: Note
    facts: list[Fact] = field(default_factory=list)
    hot_topics: list[HotTopic] = field(default_factory=list)
    resolved_topics: list[HotTopic] = field(default_factory=list)
    memories: list[Memory] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)


class NoteService:
    """Service for attaching extracted notes to contacts."""

    def __init__(self, store: Store) -> None:
        """Initialize note service.

        Args:
            store: Repositories to write through.
        """
        self._store = store

    def build_context(self, contact_id: str | None = None) -> ExtractionContext:
        """Gather what the extractor should know about the user's contacts."""
        current = self._store.contacts.get_detail(contact_id) if contact_id else None
        return ExtractionContext(
            existing_contacts=self._store.contacts.list_all(),
            current=current,
        )

    def commit(
        self,
        contact_id: str,
        transcript: str,
        extraction: ExtractionResult,
        audio_uri: str | None = None,
        audio_duration_ms: int | None = None,
    ) -> CommitResult:
        """Persist a note with its facts, hot topics, memories and events.

        Either everything is written or nothing is.

        Raises:
            KeyError: If the contact does not exist.
            PersistenceError: If any write fails.
        """
        store = self._store
        if store.contacts.get(contact_id) is None:
            raise KeyError(contact_id)

        with store.db.transaction():
            note = store.notes.create(
                contact_id=contact_id,
                transcription=transcript,
                title=extraction.note_title,
                summary=extraction.summary,
                audio_uri=audio_uri,
                audio_duration_ms=audio_duration_ms,
            )
            result = CommitResult(note=note)

            for extracted in extraction.facts:
                existing = None
                if extracted.action is FactAction.UPDATE:
                    existing = store.facts.find(
                        contact_id, extracted.fact_type, extracted.fact_key
                    )
                if existing is not None:
                    fact = store.facts.update(existing.id, fact_value=extracted.fact_value)
                else:
                    fact = store.facts.create(
                        contact_id=contact_id,
                        fact_type=extracted.fact_type,
                        fact_key=extracted.fact_key,
                        fact_value=extracted.fact_value,
                        source_note_id=note.id,
                    )
                result.facts.append(fact)

            for topic in extraction.hot_topics:
                result.hot_topics.append(
                    store.hot_topics.create(
                        contact_id=contact_id,
                        title=topic.title,
                        context=topic.context,
                        source_note_id=note.id,
                    )
                )

            for resolved in extraction.resolved_topics:
                existing_topic = store.hot_topics.get(resolved.id)
                if existing_topic is None or existing_topic.contact_id != contact_id:
                    logger.warning(f"Ignoring resolution of unknown hot topic {resolved.id}")
                    continue
                result.resolved_topics.append(
                    store.hot_topics.resolve(resolved.id, resolved.resolution)
                )

            for memory in extraction.memories:
                result.memories.append(
                    store.memories.create(
                        contact_id=contact_id,
                        description=memory.description,
                        event_date=memory.event_date,
                        is_shared=memory.is_shared,
                        source_note_id=note.id,
                    )
                )

            for extracted_event in extraction.events:
                event_date = parse_extracted_date(extracted_event.event_date)
                if event_date is None:
                    logger.debug(f"Skipping event with unusable date {extracted_event.event_date!r}")
                    continue
                result.events.append(
                    store.events.create(
                        contact_id=contact_id,
                        title=extracted_event.title,
                        event_date=event_date,
                        source_note_id=note.id,
                    )
                )

            for group_name in extraction.suggested_groups:
                if group_name.strip():
                    group = store.groups.get_or_create(group_name)
                    store.groups.add_contact(contact_id, group.id)

            store.contacts.touch(contact_id)

        logger.info(
            f"Committed note {note.id} for contact {contact_id}: "
            f"{len(result.facts)} facts, {len(result.hot_topics)} hot topics, "
            f"{len(result.memories)} memories, {len(result.events)} events"
        )
        return result


__all__ = ["CommitResult", "NoteService"]

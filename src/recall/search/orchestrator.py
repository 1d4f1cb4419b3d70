"""Semantic search orchestration.

Decides whether a query is worth sending to the remote ranker and
assembles the evidence it is ranked against.
"""

import logging
from collections.abc import Iterable
from typing import Protocol

from ..storage.contacts import ContactRepository
from ..storage.models import ContactDetail
from .models import FactInput, MemoryInput, NoteInput, SearchRequest, SemanticSearchResult

logger = logging.getLogger(__name__)


class Ranker(Protocol):
    """Remote semantic ranking collaborator."""

    def rank(self, request: SearchRequest) -> list[SemanticSearchResult]:
        """Rank evidence against the query.

        Raises:
            NetworkError: If the remote call fails
        """
        ...


def build_request(
    query: str,
    details: Iterable[ContactDetail],
    language: str | None = None,
) -> SearchRequest:
    """Collect facts, memories and transcribed notes for a query."""
    request = SearchRequest(query=query, language=language)
    for detail in details:
        contact_id = detail.contact.id
        name = detail.contact.display_name

        request.facts.extend(
            FactInput(
                id=f.id,
                contact_id=contact_id,
                contact_name=name,
                fact_type=f.fact_type.value,
                fact_key=f.fact_key,
                fact_value=f.fact_value,
            )
            for f in detail.facts
        )
        request.memories.extend(
            MemoryInput(
                id=m.id,
                contact_id=contact_id,
                contact_name=name,
                description=m.description,
                event_date=m.event_date,
            )
            for m in detail.memories
        )
        request.notes.extend(
            NoteInput(
                id=n.id,
                contact_id=contact_id,
                contact_name=name,
                transcription=n.transcription,
            )
            for n in detail.notes
            if n.transcription
        )
    return request


class SearchOrchestrator:
    """Gates and forwards semantic queries."""

    def __init__(self, ranker: Ranker, contacts: ContactRepository | None = None) -> None:
        """Initialize orchestrator.

        Args:
            ranker: Remote ranking collaborator.
            contacts: Repository used by search_contacts().
        """
        self._ranker = ranker
        self._contacts = contacts

    def search(self, request: SearchRequest) -> list[SemanticSearchResult]:
        """Rank a request remotely.

        Returns [] without a remote call when the query is blank or there
        is no evidence. Results are returned exactly as ranked.

        Raises:
            NetworkError: If the ranker fails.
        """
        if not request.query.strip():
            return []
        if not request.has_data:
            logger.debug("No facts, memories or notes to search")
            return []

        results = self._ranker.rank(request)
        logger.info(f"Search returned {len(results)} results")
        return results

    def search_contacts(
        self,
        query: str,
        contact_ids: Iterable[str] | None = None,
    ) -> list[SemanticSearchResult]:
        """Search the given contacts, or every contact.

        The store is only read for a non-blank query.
        """
        if not query.strip():
            return []
        if self._contacts is None:
            raise ValueError("search_contacts needs a ContactRepository")

        if contact_ids is None:
            contact_ids = [c.id for c in self._contacts.list_all()]

        details = []
        for contact_id in contact_ids:
            detail = self._contacts.get_detail(contact_id)
            if detail is not None:
                details.append(detail)
        return self.search(build_request(query, details))


__all__ = ["Ranker", "SearchOrchestrator", "build_request"]

"""Fact extraction from transcribed notes.

Defines the extractor interface, the context handed to it, and the
backend-hosted implementation.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..api.client import ApiClient
from ..errors import ExtractionError, NetworkError
from ..storage.models import Contact, ContactDetail, HotTopicStatus
from .models import ExtractionResult

logger = logging.getLogger(__name__)

_CODE_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


@dataclass
class ExtractionContext:
    """What the extractor knows about the user's contacts.

    Attributes:
        existing_contacts: All contacts, for identifying who a note is about
        current: The preselected contact with its facts and topics, if any
    """

    existing_contacts: list[Contact] = field(default_factory=list)
    current: ContactDetail | None = None
    language: str | None = None

    def to_payload(self, transcript: str) -> dict[str, Any]:
        """Serialise as the body of POST /api/extract."""
        payload: dict[str, Any] = {
            "transcription": transcript,
            "existingContacts": [
                {
                    "id": c.id,
                    "firstName": c.first_name,
                    "lastName": c.last_name,
                    "tags": c.tags,
                }
                for c in self.existing_contacts
            ],
        }
        if self.current is not None:
            contact = self.current.contact
            payload["currentContact"] = {
                "id": contact.id,
                "firstName": contact.first_name,
                "lastName": contact.last_name,
                "facts": [
                    {
                        "factType": f.fact_type.value,
                        "factKey": f.fact_key,
                        "factValue": f.fact_value,
                    }
                    for f in self.current.facts
                ],
                "hotTopics": [
                    {"id": t.id, "title": t.title, "context": t.context}
                    for t in self.current.hot_topics
                    if t.status is HotTopicStatus.ACTIVE
                ],
            }
        if self.language:
            payload["language"] = self.language
        return payload


class Extractor(Protocol):
    """Interface for turning a transcript into structured data."""

    def extract(self, transcript: str, context: ExtractionContext) -> ExtractionResult:
        """Extract facts, topics, memories and events.

        Raises:
            ExtractionError: If extraction fails
        """
        ...


def clean_json_response(text: str) -> str:
    """Strip a markdown code fence around a JSON answer, if present."""
    match = _CODE_BLOCK.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_extraction_text(text: str) -> ExtractionResult:
    """Parse a model's text answer into an ExtractionResult.

    Raises:
        ExtractionError: If the text is not valid extraction JSON.
    """
    cleaned = clean_json_response(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Extractor returned invalid JSON: {cleaned[:100]}")
        raise ExtractionError(f"Invalid extraction JSON: {e}") from e
    return ExtractionResult.from_dict(data)


class HttpExtractor:
    """Extractor backed by POST /api/extract."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def extract(self, transcript: str, context: ExtractionContext) -> ExtractionResult:
        """Send the transcript to the backend and parse its extraction."""
        if not transcript.strip():
            raise ExtractionError("No transcription provided")

        try:
            data = self._client.extract(context.to_payload(transcript))
        except NetworkError as e:
            raise ExtractionError(f"Extraction request failed: {e}") from e

        result = ExtractionResult.from_dict(data)
        logger.info(
            f"Extracted {len(result.facts)} facts, {len(result.hot_topics)} hot topics"
        )
        return result


__all__ = [
    "ExtractionContext",
    "Extractor",
    "HttpExtractor",
    "clean_json_response",
    "parse_extraction_text",
]

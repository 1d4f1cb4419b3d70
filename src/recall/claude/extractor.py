"""Claude-backed fact extraction.

Calls the Anthropic messages API directly instead of going through the
Recall backend. Useful when running headless with only an API key.
"""

import logging
import os
import time

import anthropic

from ..errors import ExtractionError
from ..notes.extractor import ExtractionContext, parse_extraction_text
from ..notes.models import ExtractionResult

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 1024

EXTRACTION_PROMPT = """You extract information about people from transcribed voice notes.

EXISTING CONTACTS:
{contacts}
{current}

VOICE NOTE TRANSCRIPT:
"{transcript}"

TASK:
1. Identify the person the note is about (compare with existing contacts)
2. Extract factual information (job, company, city, relationships, birthday, interests, phone, email)
3. Extract ongoing topics worth following up on, and say which known topics this note resolves
4. Extract shared memories and upcoming dated events
5. Write a short title and a 1-2 sentence summary

RULES:
- Only extract what is explicitly said, never infer
- Relationships (wife, husband, son, daughter, colleague, boss) use factType "relationship"
- Use action "update" when a fact replaces a known value, otherwise "add"
- Event dates use DD/MM/YYYY

ANSWER WITH VALID JSON ONLY:
{{
  "contactIdentified": {{"id": "string or null", "firstName": "...", "lastName": null,
    "confidence": "high|medium|low", "needsDisambiguation": false, "suggestedMatches": []}},
  "noteTitle": "...",
  "facts": [{{"factType": "job|company|city|relationship|birthday|interest|phone|email|custom",
    "factKey": "...", "factValue": "...", "action": "add|update", "previousValue": null}}],
  "hotTopics": [{{"title": "...", "context": "..."}}],
  "resolvedTopics": [{{"id": "...", "resolution": "..."}}],
  "memories": [{{"description": "...", "eventDate": null, "isShared": false}}],
  "events": [{{"title": "...", "eventDate": "DD/MM/YYYY"}}],
  "note": {{"summary": "...", "keyPoints": []}}
}}"""


def build_prompt(transcript: str, context: ExtractionContext) -> str:
    """Render the extraction prompt for a transcript."""
    contacts = "\n".join(
        f'- "{c.display_name}" (id: {c.id}, tags: {", ".join(c.tags) or "none"})'
        for c in context.existing_contacts
    )

    current = ""
    if context.current is not None:
        detail = context.current
        facts = "\n".join(f"  - {f.fact_key}: {f.fact_value}" for f in detail.facts)
        topics = "\n".join(f"  - [{t.id}] {t.title}" for t in detail.hot_topics)
        current = (
            f"\nCURRENTLY SELECTED CONTACT:\n"
            f"- Name: {detail.contact.display_name}\n"
            f"- ID: {detail.contact.id}\n"
            f"- Known facts:\n{facts or '  (none)'}\n"
            f"- Open topics:\n{topics or '  (none)'}"
        )

    return EXTRACTION_PROMPT.format(
        contacts=contacts or "(no existing contacts)",
        current=current,
        transcript=transcript,
    )


class ClaudeExtractor:
    """Extractor using the Anthropic messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout_seconds: float = 30.0,
        client: anthropic.Anthropic | None = None,
    ) -> None:
        """Initialize extractor.

        Args:
            api_key: Anthropic API key.
            model: Model name.
            max_tokens: Response budget.
            timeout_seconds: Request timeout.
            client: Pre-built client (used by tests).
        """
        self._model = model
        self._max_tokens = max_tokens
        self._timeout_seconds = timeout_seconds
        self._client = client or anthropic.Anthropic(api_key=api_key, timeout=timeout_seconds)

    @classmethod
    def from_env(
        cls,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> "ClaudeExtractor":
        """Create an extractor using ANTHROPIC_API_KEY.

        Raises:
            ValueError: If ANTHROPIC_API_KEY is not set.
        """
        api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()
        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Set it to use the claude extraction provider."
            )
        return cls(api_key=api_key, model=model, max_tokens=max_tokens)

    def extract(self, transcript: str, context: ExtractionContext) -> ExtractionResult:
        """Extract structured data from a transcript.

        Raises:
            ExtractionError: On API failure or unparseable output.
        """
        if not transcript.strip():
            raise ExtractionError("No transcription provided")

        start_time = time.time()
        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=[{"role": "user", "content": build_prompt(transcript, context)}],
            )
        except anthropic.AuthenticationError as e:
            raise ExtractionError("Invalid API key. Please check your ANTHROPIC_API_KEY.") from e
        except anthropic.APITimeoutError as e:
            # Timeout before connection error: it is a subclass
            raise ExtractionError(
                f"Request timed out after {self._timeout_seconds} seconds."
            ) from e
        except anthropic.APIConnectionError as e:
            raise ExtractionError(f"Failed to connect to Claude API: {e}") from e
        except anthropic.APIStatusError as e:
            raise ExtractionError(f"API error ({e.status_code}): {e.message}") from e

        if not response.content or getattr(response.content[0], "type", "text") != "text":
            raise ExtractionError("Unexpected response type")

        result = parse_extraction_text(response.content[0].text)
        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Claude extraction completed in {latency_ms}ms ({len(result.facts)} facts)")
        return result


__all__ = ["ClaudeExtractor", "DEFAULT_MODEL", "EXTRACTION_PROMPT", "build_prompt"]

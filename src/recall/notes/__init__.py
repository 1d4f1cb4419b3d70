"""Note extraction and commit module for Recall.

Turns transcripts into structured facts and writes them to the store.
"""

from ..api.client import ApiClient
from .extractor import (
    ExtractionContext,
    Extractor,
    HttpExtractor,
    clean_json_response,
    parse_extraction_text,
)
from .mock import MockExtractor
from .models import (
    ExtractedEvent,
    ExtractedFact,
    ExtractedHotTopic,
    ExtractedMemory,
    ExtractionResult,
    FactAction,
    IdentifiedContact,
    ResolvedTopic,
)
from .service import CommitResult, NoteService


def create_extractor(
    provider: str = "api",
    client: ApiClient | None = None,
    claude_model: str = "claude-sonnet-4-20250514",
    max_tokens: int = 1024,
) -> Extractor:
    """Create an extractor for the configured provider.

    Args:
        provider: "api", "claude" or "mock"
        client: Backend API client, required for "api"
        claude_model: Model name for "claude"
        max_tokens: Response budget for "claude"

    Returns:
        Extractor implementation
    """
    if provider == "mock":
        return MockExtractor()
    if provider == "claude":
        from ..claude.extractor import ClaudeExtractor

        return ClaudeExtractor.from_env(model=claude_model, max_tokens=max_tokens)
    if provider == "api":
        if client is None:
            raise ValueError("The api extractor needs an ApiClient")
        return HttpExtractor(client)
    raise ValueError(f"Unknown extraction provider: {provider}")


__all__ = [
    "CommitResult",
    "ExtractedEvent",
    "ExtractedFact",
    "ExtractedHotTopic",
    "ExtractedMemory",
    "ExtractionContext",
    "ExtractionResult",
    "Extractor",
    "FactAction",
    "HttpExtractor",
    "IdentifiedContact",
    "MockExtractor",
    "NoteService",
    "ResolvedTopic",
    "clean_json_response",
    "create_extractor",
    "parse_extraction_text",
]

"""Semantic search for Recall.

Assembles local evidence and forwards queries to the remote ranker.
"""

from .models import (
    FactInput,
    MemoryInput,
    NoteInput,
    SearchRequest,
    SemanticSearchResult,
    SourceType,
)
from .orchestrator import Ranker, SearchOrchestrator, build_request

__all__ = [
    "FactInput",
    "MemoryInput",
    "NoteInput",
    "Ranker",
    "SearchOrchestrator",
    "SearchRequest",
    "SemanticSearchResult",
    "SourceType",
    "build_request",
]

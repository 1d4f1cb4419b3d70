"""Recall - local-first relationship memory.

Recall turns short voice notes about people into structured records:
- Transcription and fact extraction of voice notes
- A local SQLite store of contacts, facts, hot topics and memories
- Polling for asynchronously generated contact summaries
- "Tomorrow" reminders for contact events
- Semantic search over what you know, with a question history

Usage:
    python -m recall --profile dev status
    python -m recall export --output recall.json
"""

__version__ = "0.1.0"

from .config import RecallConfig
from .config.loader import load_config

__all__ = [
    "RecallConfig",
    "__version__",
    "load_config",
]

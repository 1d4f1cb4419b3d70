"""Direct Claude integration for Recall.

Provides fact extraction through the Anthropic API.
"""

from .extractor import ClaudeExtractor, build_prompt

__all__ = ["ClaudeExtractor", "build_prompt"]

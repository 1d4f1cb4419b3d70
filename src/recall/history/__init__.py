"""Question history for Recall."""

from .store import QuestionHistory, QuestionHistoryEntry, generate_entry_id, truncate_answer

__all__ = ["QuestionHistory", "QuestionHistoryEntry", "generate_entry_id", "truncate_answer"]

"""Bounded question history.

Keeps the most recent questions asked about contacts, newest first,
persisted to a JSON file.
"""

import json
import logging
import os
import random
import string
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from ..errors import PersistenceError
from ..storage.models import utc_now

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 50
ANSWER_MAX_LENGTH = 150

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_entry_id() -> str:
    """ID of the form qh_<epoch ms>_<7 random chars>."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"qh_{int(time.time() * 1000)}_{suffix}"


def truncate_answer(answer: str, max_length: int = ANSWER_MAX_LENGTH) -> str:
    """Shorten an answer to max_length characters plus an ellipsis."""
    if len(answer) <= max_length:
        return answer
    return answer[:max_length].strip() + "..."


@dataclass
class QuestionHistoryEntry:
    """One past question.

    Attributes:
        id: Unique entry identifier
        question: Question as asked
        answer_summary: Possibly truncated answer
        date: When it was asked
        related_contact_id: Contact the answer was about
        related_contact_name: Display name of that contact
    """

    id: str
    question: str
    answer_summary: str
    date: datetime
    related_contact_id: str | None = None
    related_contact_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "answer_summary": self.answer_summary,
            "date": self.date.isoformat(),
            "related_contact_id": self.related_contact_id,
            "related_contact_name": self.related_contact_name,
        }

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> "QuestionHistoryEntry":
        return cls(
            id=item["id"],
            question=item["question"],
            answer_summary=item["answer_summary"],
            date=datetime.fromisoformat(item["date"]),
            related_contact_id=item.get("related_contact_id"),
            related_contact_name=item.get("related_contact_name"),
        )


class QuestionHistory:
    """Capped, persisted journal of past questions.

    Entries added before load() are kept in memory and written out,
    ahead of the stored ones, once loading succeeds.
    """

    def __init__(
        self,
        persistence_path: Path | str | None = None,
        max_entries: int = MAX_HISTORY_ENTRIES,
        answer_max_length: int = ANSWER_MAX_LENGTH,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize history.

        Args:
            persistence_path: JSON file. If None, history is memory only.
            max_entries: Number of entries kept.
            answer_max_length: Characters kept from each answer.
            clock: Wall clock.
        """
        self._path = Path(persistence_path) if persistence_path else None
        self._max_entries = max_entries
        self._answer_max_length = answer_max_length
        self._clock = clock
        self._entries: list[QuestionHistoryEntry] = []
        self._hydrated = False
        self._lock = threading.Lock()

    @property
    def is_hydrated(self) -> bool:
        """True once stored entries have been loaded."""
        return self._hydrated

    @property
    def entries(self) -> list[QuestionHistoryEntry]:
        """Entries, newest first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> None:
        """Load stored entries. Only the first successful call does anything.

        Raises:
            PersistenceError: If the file exists but cannot be read.
        """
        with self._lock:
            if self._hydrated:
                return

            stored = self._read()
            merged = (self._entries + stored)[: self._max_entries]
            if merged != stored:
                self._write(merged)
            self._entries = merged
            self._hydrated = True
            logger.info(f"Loaded {len(stored)} history entries")

    def add(
        self,
        question: str,
        answer: str,
        related_contact_id: str | None = None,
        related_contact_name: str | None = None,
    ) -> QuestionHistoryEntry:
        """Record a question; the oldest entries beyond the cap are dropped.

        Raises:
            PersistenceError: If the history cannot be written. The entry is
                not recorded.
        """
        entry = QuestionHistoryEntry(
            id=generate_entry_id(),
            question=question,
            answer_summary=truncate_answer(answer, self._answer_max_length),
            date=self._clock(),
            related_contact_id=related_contact_id,
            related_contact_name=related_contact_name,
        )
        with self._lock:
            self._commit([entry, *self._entries][: self._max_entries])
        return entry

    def remove(self, entry_id: str) -> bool:
        """Remove one entry.

        Returns:
            True if an entry was removed.
        """
        with self._lock:
            remaining = [e for e in self._entries if e.id != entry_id]
            if len(remaining) == len(self._entries):
                return False
            self._commit(remaining)
            return True

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._commit([])

    def _read(self) -> list[QuestionHistoryEntry]:
        if not self._path or not self._path.exists():
            return []

        try:
            with open(self._path) as f:
                data = json.load(f)
            version = data.get("version", 1)
            if version != 1:
                logger.warning(f"Unknown history file version: {version}")
            return [QuestionHistoryEntry.from_dict(item) for item in data.get("entries", [])]
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Failed to load question history: {e}")
            raise PersistenceError(f"Corrupt question history at {self._path}: {e}") from e

    def _commit(self, entries: list[QuestionHistoryEntry]) -> None:
        """Persist then adopt a new entry list (lock held).

        Nothing is written until hydrated; a failed write leaves the
        in-memory entries unchanged.
        """
        if self._hydrated:
            self._write(entries)
        self._entries = entries

    def _write(self, entries: list[QuestionHistoryEntry]) -> None:
        """Atomically replace the history file."""
        if not self._path:
            return

        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            data = {"version": 1, "entries": [e.to_dict() for e in entries]}
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            logger.error(f"Failed to save question history: {e}")
            raise PersistenceError(f"Cannot write question history: {e}") from e


__all__ = [
    "ANSWER_MAX_LENGTH",
    "MAX_HISTORY_ENTRIES",
    "QuestionHistory",
    "QuestionHistoryEntry",
    "generate_entry_id",
    "truncate_answer",
]

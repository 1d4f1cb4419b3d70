"""Composition root for Recall.

Builds every component from configuration and wires the capture
pipeline to the poller, the reminder scheduler and the question history.
"""

import logging
import threading
from zoneinfo import ZoneInfo

from .api.client import ApiClient
from .capture.machine import CaptureMachine, CaptureResult
from .capture.recorder import FileRecorder, MockRecorder, Recorder
from .config import RecallConfig
from .config.profiles import can_activate_pro
from .enrichment.poller import EnrichmentPoller
from .enrichment.scheduler import Scheduler
from .errors import NetworkError, PersistenceError
from .history.store import QuestionHistory, QuestionHistoryEntry
from .notes import NoteService, create_extractor
from .reminders.notifications import LocalNotificationCenter, NotificationCenter
from .reminders.scheduler import ReminderScheduler
from .search.models import SemanticSearchResult
from .search.orchestrator import SearchOrchestrator
from .storage import Database, Store
from .storage.models import HotTopicStatus
from .stt import create_transcriber

logger = logging.getLogger(__name__)


class RecallApp:
    """Owns the components of one Recall process."""

    def __init__(
        self,
        config: RecallConfig,
        store: Store,
        capture: CaptureMachine,
        poller: EnrichmentPoller,
        reminders: ReminderScheduler,
        notifications: NotificationCenter,
        search: SearchOrchestrator,
        history: QuestionHistory,
        api: ApiClient | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.capture = capture
        self.poller = poller
        self.reminders = reminders
        self.notifications = notifications
        self.search = search
        self.history = history
        self.api = api

    @classmethod
    def from_config(
        cls,
        config: RecallConfig,
        use_mocks: bool = False,
        scheduler: Scheduler | None = None,
        recorder: Recorder | None = None,
    ) -> "RecallApp":
        """Create the application from configuration.

        Args:
            config: Recall configuration
            use_mocks: Use mock collaborators and an in-memory database
            scheduler: Scheduler for the poller (defaults to threading timers)
            recorder: Recorder override

        Returns:
            Configured RecallApp instance
        """
        storage = config.storage
        if use_mocks:
            db = Database(":memory:")
        else:
            db = Database(storage.db_path)
        store = Store(db)

        api = None
        if not use_mocks:
            api = ApiClient(
                base_url=config.api.base_url,
                timeout=config.api.timeout_seconds,
                token=config.api.token,
            )

        transcriber = create_transcriber(api, use_mock=use_mocks)
        provider = "mock" if use_mocks else config.extraction.provider
        extractor = create_extractor(
            provider,
            client=api,
            claude_model=config.extraction.claude_model,
            max_tokens=config.extraction.max_tokens,
        )
        if recorder is None:
            recorder = MockRecorder() if use_mocks else FileRecorder(storage.recordings_path)

        capture = CaptureMachine(
            recorder=recorder,
            transcriber=transcriber,
            extractor=extractor,
            notes=NoteService(store),
            error_timeout=config.capture.error_timeout_seconds,
        )

        poller = EnrichmentPoller(
            fetch=store.contacts.get_detail,
            scheduler=scheduler,
            interval=config.poller.interval_seconds,
            backoff_factor=config.poller.backoff_factor,
            max_interval=config.poller.max_interval_seconds,
            max_consecutive_failures=config.poller.max_consecutive_failures,
            activity_window=config.poller.activity_window_seconds,
        )

        notifications = LocalNotificationCenter(
            persistence_path=None if use_mocks else storage.notifications_path
        )
        tz = ZoneInfo(config.reminders.timezone) if config.reminders.timezone else None
        reminders = ReminderScheduler(
            notifications,
            hour=config.reminders.hour,
            minute=config.reminders.minute,
            title=config.reminders.notification_title,
            tz=tz,
            events=store.events,
        )

        ranker = api if api is not None else _NoRanker()
        search = SearchOrchestrator(ranker, contacts=store.contacts)

        history = QuestionHistory(
            persistence_path=None if use_mocks else storage.history_path,
            max_entries=config.history.max_entries,
            answer_max_length=config.history.answer_max_length,
        )

        logger.info(f"Recall initialized (database: {db.path})")
        return cls(
            config=config,
            store=store,
            capture=capture,
            poller=poller,
            reminders=reminders,
            notifications=notifications,
            search=search,
            history=history,
            api=api,
        )

    def finish_capture(self, contact_id: str | None = None) -> CaptureResult:
        """Commit the current capture and start following up on it.

        Watches the contact for its AI summary, asks the backend to
        generate one, and schedules reminders for new events.
        """
        result = self.capture.extract(contact_id)

        self.poller.watch(result.contact_id)
        if self.api is not None:
            self.request_summary(result.contact_id)

        contact = self.store.contacts.get(result.contact_id)
        name = contact.display_name if contact else ""
        self.reminders.schedule_pending(result.commit.events, {result.contact_id: name})
        return result

    def request_summary(self, contact_id: str) -> threading.Thread | None:
        """Ask the backend for a new contact summary without waiting.

        The summary lands in the store; the poller observes it.
        """
        if self.api is None:
            return None

        thread = threading.Thread(
            target=self._generate_summary, args=(contact_id,), daemon=True
        )
        thread.start()
        return thread

    def _generate_summary(self, contact_id: str) -> None:
        detail = self.store.contacts.get_detail(contact_id)
        if detail is None or not detail.has_enrichable_data or self.api is None:
            return

        payload = {
            "contact": {
                "firstName": detail.contact.first_name,
                "lastName": detail.contact.last_name,
            },
            "facts": [
                {"factType": f.fact_type.value, "factKey": f.fact_key, "factValue": f.fact_value}
                for f in detail.facts
            ],
            "hotTopics": [
                {"title": t.title, "context": t.context or "", "status": t.status.value}
                for t in detail.hot_topics
                if t.status is HotTopicStatus.ACTIVE
            ],
        }
        try:
            summary = self.api.summarize(payload)
            self.store.contacts.set_ai_summary(contact_id, summary)
        except (NetworkError, PersistenceError) as e:
            logger.warning(f"Summary generation for {contact_id} failed: {e}")

    def ask(self, question: str) -> list[SemanticSearchResult]:
        """Search every contact and record the best answer in the history."""
        results = self.search.search_contacts(question)
        if results:
            best = results[0]
            self.history.add(
                question=question,
                answer=best.answer,
                related_contact_id=best.contact_id,
                related_contact_name=best.contact_name,
            )
        return results

    def recent_questions(self) -> list[QuestionHistoryEntry]:
        """Question history, loading it on first use."""
        if not self.history.is_hydrated:
            self.history.load()
        return self.history.entries

    def schedule_pending_reminders(self) -> list[str]:
        """Schedule reminders for tomorrow's events."""
        events = self.store.events.list_pending_notifications()
        names = {}
        for event in events:
            contact = self.store.contacts.get(event.contact_id)
            if contact is not None:
                names[event.contact_id] = contact.display_name
        return self.reminders.schedule_pending(events, names)

    def can_activate_pro(self, identity: str | None, is_test_pro: bool = False) -> bool:
        """Whether an identity may manually activate Pro."""
        return can_activate_pro(self.config.features, identity, is_test_pro)

    def close(self) -> None:
        """Stop background work and release resources."""
        self.poller.stop_all()
        self.capture.reset()
        if self.api is not None:
            self.api.close()
        self.store.close()
        logger.info("Recall shut down")


class _NoRanker:
    """Ranker used without a backend: nothing ever ranks."""

    def rank(self, request: object) -> list[SemanticSearchResult]:
        return []


__all__ = ["RecallApp"]

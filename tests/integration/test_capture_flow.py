"""Integration tests for the capture to enrichment flow.

Drives a voice note through the application: capture, commit, polling
for the summary, event reminders and question history.
"""

import json
from datetime import date, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from recall.api import ApiClient
from recall.app import RecallApp
from recall.capture import CaptureMachine, CaptureState, FileRecorder
from recall.config import RecallConfig
from recall.enrichment import ManualScheduler, PollState
from recall.errors import TranscriptionError
from recall.notes import NoteService
from recall.notes.mock import MockExtractor
from recall.notes.models import (
    ExtractedEvent,
    ExtractedFact,
    ExtractedHotTopic,
    ExtractionResult,
)
from recall.search import SearchOrchestrator, SemanticSearchResult, SourceType
from recall.storage import Database, FactType, Store
from recall.stt import HttpTranscriber


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Create a hand-driven scheduler for the poller."""
    return ManualScheduler()


@pytest.fixture
def app(scheduler: ManualScheduler) -> RecallApp:
    """Create an application wired with mock collaborators."""
    application = RecallApp.from_config(RecallConfig(), use_mocks=True, scheduler=scheduler)
    yield application
    application.close()


def in_days(days: int) -> str:
    """A DD/MM/YYYY date relative to today."""
    return (date.today() + timedelta(days=days)).strftime("%d/%m/%Y")


class TestCaptureFlow:
    """End-to-end capture tests."""

    def test_note_to_summary(self, app: RecallApp, scheduler: ManualScheduler) -> None:
        """Test that a captured note is committed and polled until summarised."""
        alice = app.store.contacts.create("Alice", last_name="Martin")
        app.capture._transcriber.set_response("Alice started as a nurse and is moving to Lyon")
        app.capture._extractor.set_result(
            ExtractionResult(
                facts=[ExtractedFact(FactType.JOB, "Job", "Nurse")],
                hot_topics=[ExtractedHotTopic("Moving to Lyon")],
                note_title="New job",
            )
        )

        app.capture.start(alice.id)
        app.capture.stop()
        result = app.finish_capture()

        assert app.capture.state is CaptureState.IDLE
        assert result.commit.note.title == "New job"

        handle = app.poller.get(alice.id)
        scheduler.run_pending()
        assert handle.is_active

        app.store.contacts.set_ai_summary(alice.id, "Alice is a nurse moving to Lyon.")
        scheduler.advance(1.5)

        assert handle.state is PollState.COMPLETED
        assert handle.last_detail.ai_summary == "Alice is a nurse moving to Lyon."

    def test_event_reminder_scheduled(self, app: RecallApp) -> None:
        """Test that extracted events get a reminder the evening before."""
        alice = app.store.contacts.create("Alice")
        app.capture._transcriber.set_response("Alice has her interview in three days")
        app.capture._extractor.set_result(
            ExtractionResult(events=[ExtractedEvent("job interview", in_days(3))])
        )

        app.capture.start(alice.id)
        app.capture.stop()
        result = app.finish_capture()

        pending = app.notifications.list_pending()
        assert len(pending) == 1
        assert pending[0].content.body == "Tomorrow: Alice job interview"
        assert pending[0].content.data == {"event_id": result.commit.events[0].id}
        assert app.store.events.get(result.commit.events[0].id).notified_at is not None

    def test_failed_transcription_recovers(self, app: RecallApp) -> None:
        """Test that a failed capture can be reset and retried."""
        alice = app.store.contacts.create("Alice")
        app.capture._transcriber.set_error("service unavailable")

        app.capture.start(alice.id)
        with pytest.raises(TranscriptionError):
            app.capture.stop()
        assert app.capture.state is CaptureState.ERROR

        app.capture.reset()
        app.capture._transcriber.set_response("Alice says hi")
        app.capture.start(alice.id)
        app.capture.stop()
        app.finish_capture()

        assert len(app.store.notes.list_by_owner(alice.id)) == 1

    def test_summary_requested_from_backend(self, app: RecallApp) -> None:
        """Test that the backend summary is stored for the poller to see."""
        alice = app.store.contacts.create("Alice")
        app.store.facts.create(alice.id, FactType.JOB, "Job", "Nurse")
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"summary": "Alice is a nurse."})

        app.api = ApiClient(base_url="https://api.test", transport=httpx.MockTransport(handler))

        thread = app.request_summary(alice.id)
        thread.join(timeout=5)

        assert requests[0]["facts"][0]["factValue"] == "Nurse"
        assert app.store.contacts.get(alice.id).ai_summary == "Alice is a nurse."

    def test_malformed_backend_transcript(self, tmp_path: Path) -> None:
        """Test that a malformed transcription response ends in ERROR."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"transcript": "hi", "confidence": "high"})

        client = ApiClient(base_url="https://api.test", transport=httpx.MockTransport(handler))
        store = Store(Database(":memory:"))
        recorder = FileRecorder(tmp_path)
        machine = CaptureMachine(
            recorder=recorder,
            transcriber=HttpTranscriber(client),
            extractor=MockExtractor(),
            notes=NoteService(store),
        )

        machine.start()
        recorder.write(b"audio")
        with pytest.raises(TranscriptionError):
            machine.stop()

        assert machine.state is CaptureState.ERROR
        assert "confidence" in machine.error
        client.close()
        store.close()


class TestQuestions:
    """Tests for asking questions about contacts."""

    def test_ask_records_history(self, app: RecallApp) -> None:
        """Test that the best answer lands in the question history."""
        alice = app.store.contacts.create("Alice")
        app.store.facts.create(alice.id, FactType.JOB, "Job", "Nurse")
        ranker = MagicMock()
        ranker.rank.return_value = [
            SemanticSearchResult(
                contact_id=alice.id,
                contact_name="Alice",
                answer="Alice works as a nurse. " * 10,
                reference="Job: Nurse",
                source_type=SourceType.FACT,
                source_id="f1",
                relevance_score=95,
            )
        ]
        app.search = SearchOrchestrator(ranker, contacts=app.store.contacts)

        results = app.ask("Who is a nurse?")

        assert len(results) == 1
        entries = app.recent_questions()
        assert entries[0].question == "Who is a nurse?"
        assert entries[0].related_contact_id == alice.id
        assert len(entries[0].answer_summary) <= 153

    def test_blank_question(self, app: RecallApp) -> None:
        """Test that blank questions return nothing and are not recorded."""
        assert app.ask("   ") == []
        assert app.recent_questions() == []


class TestProGate:
    """Tests for the manual Pro activation gate."""

    def test_allowlisted(self) -> None:
        """Test gating through configured flags."""
        config = RecallConfig()
        config.features.allowlisted_identities = {"ann@example.com"}
        app = RecallApp.from_config(config, use_mocks=True, scheduler=ManualScheduler())

        assert app.can_activate_pro("Ann@Example.com")
        assert not app.can_activate_pro("bob@example.com")
        app.close()

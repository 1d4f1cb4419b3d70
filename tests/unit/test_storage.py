"""Unit tests for the local store."""

import json
from datetime import UTC, date, datetime
from unittest.mock import patch

import pytest

from recall.errors import PersistenceError
from recall.storage import Database, FactType, HotTopicStatus, Store
from recall.storage.events import parse_extracted_date


@pytest.fixture
def db(tmp_path) -> Database:
    """Create a database in a temporary directory."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def store(db: Database) -> Store:
    """Create repositories over the test database."""
    return Store(db)


class TestDatabase:
    """Tests for the Database wrapper."""

    def test_creates_file_and_parent_dirs(self, tmp_path) -> None:
        """Test that opening a database creates missing directories."""
        path = tmp_path / "nested" / "dir" / "recall.db"
        database = Database(path)
        assert path.exists()
        database.close()

    def test_wal_mode_enabled(self, db: Database) -> None:
        """Test that file databases use WAL mode."""
        assert db.is_wal_mode_enabled()

    def test_schema_is_idempotent(self, tmp_path) -> None:
        """Test that reopening an existing database keeps its data."""
        path = tmp_path / "recall.db"
        first = Store(Database(path))
        first.contacts.create("Alice")
        first.close()

        second = Store(Database(path))
        assert second.contacts.count() == 1
        second.close()

    def test_transaction_commits(self, store: Store) -> None:
        """Test that a successful transaction is committed."""
        with store.db.transaction():
            store.contacts.create("Alice")
            store.contacts.create("Bob")

        assert store.contacts.count() == 2

    def test_transaction_rolls_back_on_error(self, store: Store) -> None:
        """Test that an exception discards every write in the block."""
        with pytest.raises(RuntimeError):
            with store.db.transaction():
                store.contacts.create("Alice")
                raise RuntimeError("boom")

        assert store.contacts.count() == 0
        assert not store.db.in_transaction

    def test_nested_transaction_joins_outer(self, store: Store) -> None:
        """Test that an inner block is rolled back with the outer one."""
        with pytest.raises(RuntimeError):
            with store.db.transaction():
                with store.db.transaction():
                    store.contacts.create("Alice")
                assert store.db.in_transaction
                raise RuntimeError("outer failure")

        assert store.contacts.count() == 0

    def test_sqlite_errors_become_persistence_errors(self, store: Store) -> None:
        """Test that constraint violations surface as PersistenceError."""
        with pytest.raises(PersistenceError):
            store.notes.create(contact_id="no-such-contact", transcription="hello")

    def test_counts(self, store: Store) -> None:
        """Test row counts per table."""
        contact = store.contacts.create("Alice")
        store.notes.create(contact.id, transcription="met at the park")

        counts = store.db.counts()
        assert counts["contacts"] == 1
        assert counts["notes"] == 1
        assert counts["facts"] == 0

    def test_export_is_json_serialisable(self, store: Store) -> None:
        """Test that the export contains every table and dumps to JSON."""
        contact = store.contacts.create("Alice", tags=["friend"])
        store.facts.create(contact.id, FactType.CITY, "City", "Lyon")

        exported = store.db.export()

        assert exported["version"] == 1
        assert set(exported["data"]) >= {"contacts", "facts", "notes", "groups"}
        assert exported["data"]["facts"][0]["fact_value"] == "Lyon"
        json.dumps(exported)


class TestContactRepository:
    """Tests for contact storage."""

    def test_create_and_get(self, store: Store) -> None:
        """Test creating a contact."""
        contact = store.contacts.create("  Alice ", last_name="Martin", tags=["work"])

        loaded = store.contacts.get(contact.id)
        assert loaded is not None
        assert loaded.first_name == "Alice"
        assert loaded.display_name == "Alice Martin"
        assert loaded.tags == ["work"]
        assert loaded.ai_summary is None

    def test_empty_first_name_rejected(self, store: Store) -> None:
        """Test that a blank first name is refused."""
        with pytest.raises(ValueError):
            store.contacts.create("   ")
        assert store.contacts.count() == 0

    def test_ids_are_unique(self, store: Store) -> None:
        """Test that every contact gets its own ID."""
        ids = {store.contacts.create(f"Person {i}").id for i in range(20)}
        assert len(ids) == 20

    def test_update_refreshes_updated_at(self, store: Store) -> None:
        """Test that updates change fields and updated_at."""
        contact = store.contacts.create("Alice")

        updated = store.contacts.update(contact.id, nickname="Ali", tags=["climbing"])

        assert updated.nickname == "Ali"
        assert updated.tags == ["climbing"]
        assert updated.updated_at >= contact.updated_at
        assert updated.created_at == contact.created_at

    def test_update_rejects_unknown_fields(self, store: Store) -> None:
        """Test that id and other columns cannot be updated."""
        contact = store.contacts.create("Alice")
        with pytest.raises(ValueError):
            store.contacts.update(contact.id, id="other")

    def test_update_missing_contact(self, store: Store) -> None:
        """Test updating a contact that does not exist."""
        with pytest.raises(KeyError):
            store.contacts.update("missing", nickname="x")

    def test_touch_orders_list_all(self, store: Store) -> None:
        """Test that the most recently contacted person comes first."""
        alice = store.contacts.create("Alice")
        bob = store.contacts.create("Bob")

        store.contacts.touch(bob.id)

        contacts = store.contacts.list_all()
        assert [c.id for c in contacts][0] == bob.id
        assert {c.id for c in contacts} == {alice.id, bob.id}

    def test_set_ai_summary(self, store: Store) -> None:
        """Test storing the enrichment summary."""
        contact = store.contacts.create("Alice")

        store.contacts.set_ai_summary(contact.id, "Alice is a nurse.", ["Ask about Lyon"])

        loaded = store.contacts.get(contact.id)
        assert loaded.ai_summary == "Alice is a nurse."
        assert loaded.ice_breakers == ["Ask about Lyon"]

    def test_find_by_first_name_ignores_case(self, store: Store) -> None:
        """Test first name lookup."""
        store.contacts.create("Alice")
        store.contacts.create("ALICE", last_name="Durand")
        store.contacts.create("Bob")

        assert len(store.contacts.find_by_first_name("alice")) == 2

    def test_get_detail(self, store: Store) -> None:
        """Test loading a contact with its attached records."""
        contact = store.contacts.create("Alice")
        note = store.notes.create(contact.id, transcription="She moved to Lyon")
        store.facts.create(contact.id, "city", "City", "Lyon", source_note_id=note.id)
        store.hot_topics.create(contact.id, "New job", source_note_id=note.id)
        store.memories.create(contact.id, "Dinner in Paris")

        detail = store.contacts.get_detail(contact.id)

        assert detail is not None
        assert detail.fact_count == 1
        assert detail.hot_topic_count == 1
        assert len(detail.notes) == 1
        assert len(detail.memories) == 1
        assert detail.has_enrichable_data

    def test_get_detail_missing(self, store: Store) -> None:
        """Test loading a contact that does not exist."""
        assert store.contacts.get_detail("missing") is None

    def test_delete_cascades(self, store: Store) -> None:
        """Test that deleting a contact removes everything attached to it."""
        contact = store.contacts.create("Alice")
        note = store.notes.create(contact.id, transcription="hello")
        store.facts.create(contact.id, "job", "Job", "Nurse", source_note_id=note.id)
        store.hot_topics.create(contact.id, "Moving house")
        store.memories.create(contact.id, "Trip to Rome")
        store.events.create(contact.id, "Interview", date(2030, 1, 10))
        group = store.groups.create("Work")
        store.groups.add_contact(contact.id, group.id)

        assert store.contacts.delete(contact.id)

        counts = store.db.counts()
        for table in ("contacts", "notes", "facts", "hot_topics", "memories", "events"):
            assert counts[table] == 0, table
        assert counts["contact_groups"] == 0
        assert counts["groups"] == 1


class TestNoteRepository:
    """Tests for note storage."""

    def test_notes_newest_first(self, store: Store) -> None:
        """Test note ordering within a contact."""
        contact = store.contacts.create("Alice")
        older = store.notes.create(
            contact.id, transcription="first", created_at=datetime(2025, 1, 1, tzinfo=UTC)
        )
        newer = store.notes.create(
            contact.id, transcription="second", created_at=datetime(2025, 2, 1, tzinfo=UTC)
        )

        notes = store.notes.list_by_owner(contact.id)
        assert [n.id for n in notes] == [newer.id, older.id]

    def test_delete_note_keeps_derived_records(self, store: Store) -> None:
        """Test that facts outlive the note they came from."""
        contact = store.contacts.create("Alice")
        note = store.notes.create(contact.id, transcription="She works at Acme")
        fact = store.facts.create(contact.id, "company", "Company", "Acme", source_note_id=note.id)
        topic = store.hot_topics.create(contact.id, "Promotion", source_note_id=note.id)

        assert store.notes.delete(note.id)

        kept_fact = store.facts.get(fact.id)
        kept_topic = store.hot_topics.get(topic.id)
        assert kept_fact is not None and kept_fact.source_note_id is None
        assert kept_topic is not None and kept_topic.source_note_id is None

    def test_update_note(self, store: Store) -> None:
        """Test updating a note's summary."""
        contact = store.contacts.create("Alice")
        note = store.notes.create(contact.id, transcription="hello")

        updated = store.notes.update(note.id, summary="Said hello")

        assert updated.summary == "Said hello"
        assert updated.created_at == note.created_at


class TestFactRepository:
    """Tests for fact storage."""

    def test_round_trip(self, store: Store) -> None:
        """Test that a created fact reads back unchanged."""
        contact = store.contacts.create("Alice")
        fact = store.facts.create(contact.id, FactType.JOB, "Job", "Nurse")

        facts = store.facts.list_by_owner(contact.id)
        assert len(facts) == 1
        assert facts[0].fact_type is FactType.JOB
        assert facts[0].fact_key == "Job"
        assert facts[0].fact_value == "Nurse"
        assert facts[0].id == fact.id

    def test_unknown_type_is_custom(self, store: Store) -> None:
        """Test that unknown fact types are stored as custom."""
        contact = store.contacts.create("Alice")
        fact = store.facts.create(contact.id, "favourite_colour", "Colour", "Blue")
        assert fact.fact_type is FactType.CUSTOM

    def test_update_changes_only_value(self, store: Store) -> None:
        """Test updating a fact's value."""
        contact = store.contacts.create("Alice")
        fact = store.facts.create(contact.id, FactType.CITY, "City", "Paris")

        updated = store.facts.update(fact.id, fact_value="Lyon")

        assert updated.fact_value == "Lyon"
        assert updated.fact_key == "City"
        assert updated.updated_at >= fact.updated_at

    def test_update_rejects_immutable_fields(self, store: Store) -> None:
        """Test that type and key cannot change."""
        contact = store.contacts.create("Alice")
        fact = store.facts.create(contact.id, FactType.CITY, "City", "Paris")

        with pytest.raises(ValueError):
            store.facts.update(fact.id, fact_key="Town")
        with pytest.raises(ValueError):
            store.facts.update(fact.id, fact_type="job", fact_value="x")

    def test_find(self, store: Store) -> None:
        """Test finding a fact by type and key."""
        contact = store.contacts.create("Alice")
        fact = store.facts.create(contact.id, FactType.CITY, "City", "Paris")

        assert store.facts.find(contact.id, FactType.CITY, "city").id == fact.id
        assert store.facts.find(contact.id, FactType.JOB, "City") is None


class TestHotTopicRepository:
    """Tests for hot topic storage."""

    def test_resolve_and_reopen(self, store: Store) -> None:
        """Test the hot topic lifecycle."""
        contact = store.contacts.create("Alice")
        topic = store.hot_topics.create(contact.id, "Job hunt", context="Interviewing")

        resolved = store.hot_topics.resolve(topic.id, "Got the job")
        assert resolved.status is HotTopicStatus.RESOLVED
        assert resolved.resolution == "Got the job"
        assert resolved.resolved_at is not None

        reopened = store.hot_topics.reopen(topic.id)
        assert reopened.status is HotTopicStatus.ACTIVE
        assert reopened.resolved_at is None

    def test_list_hides_resolved_by_default(self, store: Store) -> None:
        """Test active-only listing."""
        contact = store.contacts.create("Alice")
        active = store.hot_topics.create(contact.id, "Marathon training")
        done = store.hot_topics.create(contact.id, "Moving house")
        store.hot_topics.resolve(done.id)

        assert [t.id for t in store.hot_topics.list_by_owner(contact.id)] == [active.id]
        assert len(store.hot_topics.list_by_owner(contact.id, include_resolved=True)) == 2


class TestGroupRepository:
    """Tests for group storage."""

    def test_get_or_create_is_case_insensitive(self, store: Store) -> None:
        """Test that group names match ignoring case and whitespace."""
        first = store.groups.get_or_create("Work")
        second = store.groups.get_or_create("  work ")

        assert first.id == second.id
        assert len(store.groups.list_all()) == 1

    def test_duplicate_name_rejected(self, store: Store) -> None:
        """Test that names are unique ignoring case."""
        store.groups.create("Climbing")
        with pytest.raises(PersistenceError):
            store.groups.create("CLIMBING")

    def test_list_all_orders_by_name(self, store: Store) -> None:
        """Test case-insensitive name ordering."""
        for name in ("gamma", "Beta", "alpha"):
            store.groups.create(name)

        assert [g.name for g in store.groups.list_all()] == ["alpha", "Beta", "gamma"]

    def test_memberships(self, store: Store) -> None:
        """Test adding, replacing and removing memberships."""
        alice = store.contacts.create("Alice")
        work = store.groups.create("Work")
        family = store.groups.create("Family")

        store.groups.add_contact(alice.id, work.id)
        store.groups.add_contact(alice.id, work.id)
        assert [g.id for g in store.groups.list_for_contact(alice.id)] == [work.id]

        store.groups.set_contact_groups(alice.id, [family.id])
        assert [g.id for g in store.groups.list_for_contact(alice.id)] == [family.id]
        assert store.groups.list_contact_ids(family.id) == [alice.id]

        store.groups.remove_contact(alice.id, family.id)
        assert store.groups.list_for_contact(alice.id) == []

    def test_delete_group_keeps_contacts(self, store: Store) -> None:
        """Test that deleting a group never deletes contacts."""
        alice = store.contacts.create("Alice")
        work = store.groups.create("Work")
        store.groups.add_contact(alice.id, work.id)

        store.groups.delete(work.id)

        assert store.contacts.get(alice.id) is not None
        assert store.groups.list_for_contact(alice.id) == []


class TestEventRepository:
    """Tests for event storage."""

    def test_pending_notifications_are_tomorrow_only(self, store: Store) -> None:
        """Test selecting tomorrow's events that were not notified."""
        contact = store.contacts.create("Alice")
        tomorrow = store.events.create(contact.id, "Interview", date(2025, 6, 9))
        store.events.create(contact.id, "Wedding", date(2025, 6, 20))

        pending = store.events.list_pending_notifications(today=date(2025, 6, 8))
        assert [e.id for e in pending] == [tomorrow.id]

        store.events.mark_notified(tomorrow.id)
        assert store.events.list_pending_notifications(today=date(2025, 6, 8)) == []

    def test_list_upcoming(self, store: Store) -> None:
        """Test the upcoming window."""
        contact = store.contacts.create("Alice")
        soon = store.events.create(contact.id, "Birthday", date(2025, 6, 10))
        store.events.create(contact.id, "Far away", date(2025, 9, 1))
        store.events.create(contact.id, "Past", date(2025, 6, 1))

        upcoming = store.events.list_upcoming(days_ahead=30, today=date(2025, 6, 8))
        assert [e.id for e in upcoming] == [soon.id]


class TestParseExtractedDate:
    """Tests for DD/MM/YYYY parsing."""

    def test_valid_future_date(self) -> None:
        """Test parsing a future date."""
        assert parse_extracted_date("12/06/2025", today=date(2025, 6, 1)) == date(2025, 6, 12)

    def test_today_is_accepted(self) -> None:
        """Test that today is not considered past."""
        assert parse_extracted_date("1/6/2025", today=date(2025, 6, 1)) == date(2025, 6, 1)

    @pytest.mark.parametrize("value", ["31/02/2025", "2025-06-12", "12/06/25", "soon", "", None])
    def test_invalid_dates(self, value: str | None) -> None:
        """Test that malformed or impossible dates are rejected."""
        assert parse_extracted_date(value, today=date(2025, 1, 1)) is None

    def test_past_date_rejected(self) -> None:
        """Test that past dates are rejected."""
        assert parse_extracted_date("01/01/2024", today=date(2025, 1, 1)) is None


class TestMissingRecords:
    """Tests for operations on records that are not there."""

    @pytest.mark.parametrize(
        ("repository", "fields"),
        [
            ("notes", {"title": "x"}),
            ("facts", {"fact_value": "x"}),
            ("hot_topics", {"title": "x"}),
            ("memories", {"description": "x"}),
            ("events", {"title": "x"}),
        ],
    )
    def test_update_missing_raises_key_error(
        self, store: Store, repository: str, fields: dict
    ) -> None:
        """Test that updating an unknown id raises KeyError."""
        with pytest.raises(KeyError):
            getattr(store, repository).update("missing", **fields)

    def test_group_update_missing(self, store: Store) -> None:
        """Test renaming an unknown group."""
        with pytest.raises(KeyError):
            store.groups.update("missing", "Friends")

    def test_unreadable_row_after_write(self, store: Store) -> None:
        """Test that a record that cannot be read back raises KeyError."""
        alice = store.contacts.create("Alice")

        with patch.object(store.notes, "get", return_value=None):
            with pytest.raises(KeyError):
                store.notes.create(alice.id, transcription="hello")
        with patch.object(store.events, "get", return_value=None):
            with pytest.raises(KeyError):
                store.events.create(alice.id, "Dinner", date(2099, 1, 1))
        with patch.object(store.groups, "get", return_value=None):
            with pytest.raises(KeyError):
                store.groups.create("Friends")

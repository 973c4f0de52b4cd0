"""Unit tests for InMemoryCalendarStore acceptance rules and notifications."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from calkeeper.errors import EventNotFoundError, PersistenceFailedError, StoreUnavailableError
from calkeeper.models import (
    CalendarHandle,
    EntityType,
    EventRecord,
    EventSpan,
    Source,
    SourceType,
)
from calkeeper.stores import InMemoryCalendarStore
from calkeeper.stores.memory import DEFAULT_LOCAL_SOURCE

pytestmark = pytest.mark.unit

START = datetime(2024, 3, 4, 12, 0, tzinfo=UTC)
BIRTHDAYS = Source(identifier="bday", title="Birthdays", source_type=SourceType.birthdays)


@pytest.fixture
def memory_store() -> InMemoryCalendarStore:
    store = InMemoryCalendarStore()
    store.save_calendar(CalendarHandle(identifier="cal", title="Main", source=DEFAULT_LOCAL_SOURCE))
    return store


def _event(**overrides) -> EventRecord:
    fields = {"title": "Lunch", "start": START, "end": START + timedelta(hours=1)}
    fields.update(overrides)
    return EventRecord(**fields)


class TestCalendars:
    def test_default_source_is_local(self):
        assert InMemoryCalendarStore().list_sources() == [DEFAULT_LOCAL_SOURCE]

    def test_first_saved_calendar_becomes_default(self, memory_store):
        assert memory_store.default_calendar_for_new_events().identifier == "cal"

    def test_no_default_when_empty(self):
        assert InMemoryCalendarStore().default_calendar_for_new_events() is None

    def test_calendar_without_source_is_rejected(self, memory_store):
        with pytest.raises(PersistenceFailedError):
            memory_store.save_calendar(CalendarHandle(title="Orphan"))

    def test_unknown_source_is_rejected(self, memory_store):
        stranger = Source(identifier="x", title="X", source_type=SourceType.exchange)
        with pytest.raises(PersistenceFailedError):
            memory_store.save_calendar(CalendarHandle(title="Elsewhere", source=stranger))

    def test_read_only_source_is_rejected(self):
        store = InMemoryCalendarStore(sources=[BIRTHDAYS])
        with pytest.raises(PersistenceFailedError):
            store.save_calendar(CalendarHandle(title="Mine", source=BIRTHDAYS))
        assert store.list_calendars(EntityType.event) == []

    def test_returned_handles_are_copies(self, memory_store):
        handle = memory_store.find_calendar("cal")
        handle.title = "Mutated"
        assert memory_store.find_calendar("cal").title == "Main"

    def test_set_default_calendar_requires_known_identifier(self, memory_store):
        with pytest.raises(KeyError):
            memory_store.set_default_calendar("nope")
        memory_store.set_default_calendar(None)
        assert memory_store.default_calendar_for_new_events() is None


class TestEvents:
    def test_save_assigns_identifier_and_default_calendar(self, memory_store):
        event = _event()
        memory_store.save_event(event, span=EventSpan.this_event)

        assert event.event_id
        stored = memory_store.find_event(event.event_id)
        assert stored.title == "Lunch"
        assert stored.calendar.identifier == "cal"

    def test_rejects_missing_start(self, memory_store):
        with pytest.raises(PersistenceFailedError, match="start"):
            memory_store.save_event(_event(start=None), span=EventSpan.this_event)
        assert memory_store.event_count == 0

    def test_rejects_end_before_start(self, memory_store):
        with pytest.raises(PersistenceFailedError):
            memory_store.save_event(
                _event(end=START - timedelta(minutes=1)), span=EventSpan.this_event
            )

    def test_rejects_mixed_naive_and_aware_dates(self, memory_store):
        with pytest.raises(PersistenceFailedError):
            memory_store.save_event(
                _event(end=datetime(2024, 3, 4, 13, 0)), span=EventSpan.this_event
            )

    def test_rejects_calendar_missing_from_store(self, memory_store):
        foreign = CalendarHandle(title="Foreign", source=DEFAULT_LOCAL_SOURCE)
        with pytest.raises(PersistenceFailedError):
            memory_store.save_event(_event(calendar=foreign), span=EventSpan.this_event)

    def test_rejects_read_only_calendar(self, memory_store):
        memory_store.add_calendar(
            CalendarHandle(
                identifier="ro",
                title="Shared",
                source=DEFAULT_LOCAL_SOURCE,
                allows_modifications=False,
            )
        )
        calendar = memory_store.find_calendar("ro")
        with pytest.raises(PersistenceFailedError):
            memory_store.save_event(_event(calendar=calendar), span=EventSpan.this_event)

    def test_rejects_event_without_any_calendar(self):
        store = InMemoryCalendarStore()
        with pytest.raises(PersistenceFailedError, match="No calendar"):
            store.save_event(_event(), span=EventSpan.this_event)

    def test_remove(self, memory_store):
        event = _event()
        memory_store.save_event(event, span=EventSpan.this_event)

        memory_store.remove_event(event, span=EventSpan.future_events)

        assert memory_store.find_event(event.event_id) is None

    def test_remove_unknown_event(self, memory_store):
        with pytest.raises(EventNotFoundError):
            memory_store.remove_event(_event(event_id="ghost"), span=EventSpan.future_events)


class TestAuthorizationAndNotifications:
    def test_every_operation_requires_access(self):
        store = InMemoryCalendarStore(authorized=False)
        with pytest.raises(StoreUnavailableError):
            store.list_sources()
        with pytest.raises(StoreUnavailableError):
            store.find_event("x")
        with pytest.raises(StoreUnavailableError):
            store.subscribe(lambda: None)

    def test_subscribers_fire_once_per_change(self, memory_store):
        calls: list[str] = []
        memory_store.subscribe(lambda: calls.append("a"))
        memory_store.subscribe(lambda: calls.append("b"))

        memory_store.save_event(_event(), span=EventSpan.this_event)

        assert calls == ["a", "b"]

    def test_uncommitted_calendar_save_does_not_notify(self, memory_store):
        calls: list[None] = []
        memory_store.subscribe(lambda: calls.append(None))

        memory_store.save_calendar(
            CalendarHandle(title="Quiet", source=DEFAULT_LOCAL_SOURCE), commit=False
        )

        assert calls == []

    def test_rejected_save_does_not_notify(self, memory_store):
        calls: list[None] = []
        memory_store.subscribe(lambda: calls.append(None))

        with pytest.raises(PersistenceFailedError):
            memory_store.save_event(_event(start=None), span=EventSpan.this_event)

        assert calls == []

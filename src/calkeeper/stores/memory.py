"""In-process calendar store.

Keeps calendars, sources and events in dictionaries and applies the same
acceptance rules a device calendar database does: calendars need a writable
source, events need a start, an end and a modifiable calendar.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from calkeeper.errors import EventNotFoundError, PersistenceFailedError, StoreUnavailableError
from calkeeper.models import (
    CalendarHandle,
    EntityType,
    EventRecord,
    EventSpan,
    Source,
    SourceType,
)
from calkeeper.store import CalendarStore, ChangeCallback

logger = logging.getLogger(__name__)

# Sources that mirror external feeds and never accept new calendars.
READ_ONLY_SOURCE_TYPES = frozenset({SourceType.subscribed, SourceType.birthdays})

DEFAULT_LOCAL_SOURCE = Source(
    identifier="local", title="On My Device", source_type=SourceType.local
)


class InMemoryCalendarStore(CalendarStore):
    """Calendar store held entirely in memory."""

    def __init__(
        self,
        *,
        sources: Iterable[Source] | None = None,
        authorized: bool = True,
    ) -> None:
        self._sources: list[Source] = (
            list(sources) if sources is not None else [DEFAULT_LOCAL_SOURCE]
        )
        self._calendars: dict[str, CalendarHandle] = {}
        self._events: dict[str, EventRecord] = {}
        self._default_calendar_id: str | None = None
        self._subscribers: list[ChangeCallback] = []
        self.authorized = authorized

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_source(self, source: Source) -> None:
        self._sources.append(source)

    def add_calendar(self, calendar: CalendarHandle, *, default: bool = False) -> None:
        """Register *calendar* directly, bypassing source rules and without committing."""
        self._calendars[calendar.identifier] = calendar.model_copy(deep=True)
        if default or self._default_calendar_id is None:
            self._default_calendar_id = calendar.identifier

    def set_default_calendar(self, identifier: str | None) -> None:
        if identifier is not None and identifier not in self._calendars:
            raise KeyError(identifier)
        self._default_calendar_id = identifier

    # ------------------------------------------------------------------
    # CalendarStore
    # ------------------------------------------------------------------

    def find_calendar(self, identifier: str) -> CalendarHandle | None:
        self._ensure_authorized()
        calendar = self._calendars.get(identifier)
        return calendar.model_copy(deep=True) if calendar is not None else None

    def list_calendars(self, entity_type: EntityType) -> list[CalendarHandle]:
        self._ensure_authorized()
        return [
            calendar.model_copy(deep=True)
            for calendar in self._calendars.values()
            if calendar.entity_type == entity_type
        ]

    def default_calendar_for_new_events(self) -> CalendarHandle | None:
        self._ensure_authorized()
        if self._default_calendar_id is None:
            return None
        return self.find_calendar(self._default_calendar_id)

    def list_sources(self) -> list[Source]:
        self._ensure_authorized()
        return list(self._sources)

    def save_calendar(self, calendar: CalendarHandle, *, commit: bool = True) -> None:
        self._ensure_authorized()
        source = calendar.source
        if source is None:
            raise PersistenceFailedError("Calendar has no source")
        if source not in self._sources:
            raise PersistenceFailedError(f"Unknown source: {source.identifier!r}")
        if source.source_type in READ_ONLY_SOURCE_TYPES:
            raise PersistenceFailedError(
                f"Source {source.title!r} does not allow calendar modifications"
            )
        with self._transaction(commit=commit):
            self._calendars[calendar.identifier] = calendar.model_copy(deep=True)
            if self._default_calendar_id is None:
                self._default_calendar_id = calendar.identifier
        logger.debug("Saved calendar %r on source %r", calendar.title, source.identifier)

    def save_event(self, event: EventRecord, *, span: EventSpan) -> None:
        self._ensure_authorized()
        calendar = event.calendar or self.default_calendar_for_new_events()
        if calendar is None:
            raise PersistenceFailedError("No calendar has been set")
        stored_calendar = self._calendars.get(calendar.identifier)
        if stored_calendar is None:
            raise PersistenceFailedError(f"Calendar {calendar.title!r} is not in this store")
        if not stored_calendar.allows_modifications:
            raise PersistenceFailedError(
                f"Calendar {stored_calendar.title!r} is read-only for events"
            )
        if event.start is None:
            raise PersistenceFailedError("No start date has been set")
        if event.end is None:
            raise PersistenceFailedError("No end date has been set")
        try:
            ends_before_start = event.end < event.start
        except TypeError as exc:
            raise PersistenceFailedError(
                "Start and end dates must both be timezone-aware or both naive"
            ) from exc
        if ends_before_start:
            raise PersistenceFailedError("The start date must be before the end date")

        event_id = event.event_id or str(uuid.uuid4())
        stored = event.model_copy(deep=True, update={"calendar": stored_calendar})
        stored.event_id = event_id
        with self._transaction():
            self._events[event_id] = stored
        event.event_id = event_id
        logger.debug("Saved event %s (span=%s)", event_id, span)

    def find_event(self, identifier: str) -> EventRecord | None:
        self._ensure_authorized()
        event = self._events.get(identifier)
        return event.model_copy(deep=True) if event is not None else None

    def remove_event(self, event: EventRecord, *, span: EventSpan) -> None:
        self._ensure_authorized()
        if event.event_id is None or event.event_id not in self._events:
            raise EventNotFoundError(event.event_id or "")
        calendar = self._calendars.get(self._events[event.event_id].calendar.identifier)
        if calendar is not None and not calendar.allows_modifications:
            raise PersistenceFailedError(f"Calendar {calendar.title!r} is read-only for events")
        # Occurrences are never expanded, so dropping the series record covers
        # both spans.
        with self._transaction():
            del self._events[event.event_id]
        logger.debug("Removed event %s (span=%s)", event.event_id, span)

    def subscribe(self, on_change: ChangeCallback) -> None:
        self._ensure_authorized()
        self._subscribers.append(on_change)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def event_count(self) -> int:
        return len(self._events)

    def _ensure_authorized(self) -> None:
        if not self.authorized:
            raise StoreUnavailableError("Access to the calendar store has not been granted")

    @contextmanager
    def _transaction(self, *, commit: bool = True) -> Iterator[None]:
        """Apply a mutation and commit it, restoring prior state if the commit fails."""
        calendars = dict(self._calendars)
        events = dict(self._events)
        default_calendar_id = self._default_calendar_id
        try:
            yield
            if commit:
                self._commit()
        except PersistenceFailedError:
            self._calendars = calendars
            self._events = events
            self._default_calendar_id = default_calendar_id
            raise

    def _commit(self) -> None:
        """Flush pending changes and notify subscribers once."""
        for callback in list(self._subscribers):
            try:
                callback()
            except Exception:
                logger.exception("Calendar store change subscriber failed")

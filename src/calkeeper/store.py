"""Abstract calendar store contract.

The store is the persistence/sync provider behind the scheduler: it owns
calendars, sources and events and exposes save/remove/query operations.
Every method may raise ``StoreUnavailableError`` when the provider cannot be
reached or access has not been granted.
"""

from __future__ import annotations

import abc
from collections.abc import Callable

from calkeeper.models import (
    CalendarHandle,
    EntityType,
    EventRecord,
    EventSpan,
    Source,
)

# Invoked once per batch of changes made to the store, by any writer.
ChangeCallback = Callable[[], None]


class CalendarStore(abc.ABC):
    """Provider abstraction used by the resolver and the scheduler."""

    @abc.abstractmethod
    def find_calendar(self, identifier: str) -> CalendarHandle | None:
        """Return the calendar with this stable identifier, if any."""
        ...

    @abc.abstractmethod
    def list_calendars(self, entity_type: EntityType) -> list[CalendarHandle]:
        """Return every calendar able to hold *entity_type* items."""
        ...

    @abc.abstractmethod
    def default_calendar_for_new_events(self) -> CalendarHandle | None:
        """Return the calendar new events land on when none is assigned."""
        ...

    @abc.abstractmethod
    def list_sources(self) -> list[Source]:
        """Return the accounts able to own calendars."""
        ...

    @abc.abstractmethod
    def save_calendar(self, calendar: CalendarHandle, *, commit: bool = True) -> None:
        """Create or update *calendar*.

        Raises ``PersistenceFailedError`` when the calendar's source rejects it.
        """
        ...

    @abc.abstractmethod
    def save_event(self, event: EventRecord, *, span: EventSpan) -> None:
        """Persist *event* and assign its ``event_id``.

        Raises ``PersistenceFailedError`` when the record is rejected; nothing
        is persisted in that case.
        """
        ...

    @abc.abstractmethod
    def find_event(self, identifier: str) -> EventRecord | None:
        """Return the stored event with this identifier, if any."""
        ...

    @abc.abstractmethod
    def remove_event(self, event: EventRecord, *, span: EventSpan) -> None:
        """Remove *event*; ``EventSpan.future_events`` also drops later occurrences.

        Raises ``PersistenceFailedError`` when the store refuses the removal.
        """
        ...

    @abc.abstractmethod
    def subscribe(self, on_change: ChangeCallback) -> None:
        """Register *on_change* to be called once per change batch."""
        ...

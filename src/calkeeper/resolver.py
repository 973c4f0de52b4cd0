"""Target calendar resolution.

``CalendarResolver.resolve`` finds the application's calendar in a store, or
creates it. Lookup order, first match wins:

1. calendar whose stable identifier equals the name
2. first event calendar whose title equals the name
3. a new calendar on the default calendar's source, persisted immediately

When the new calendar cannot be saved it is retried once on the first local
source; if that fails too the store's default calendar is returned instead.
Save failures are never raised to the caller. ``StoreUnavailableError`` is not
a save failure and propagates.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterator

from calkeeper.errors import PersistenceFailedError
from calkeeper.models import CalendarHandle, EntityType, RGBColor, Source
from calkeeper.store import CalendarStore

logger = logging.getLogger(__name__)

# Primary source plus at most one local-source retry.
MAX_CALENDAR_SAVE_ATTEMPTS = 2


class CalendarResolver:
    """Find or create a writable calendar by name."""

    def __init__(self, store: CalendarStore) -> None:
        self._store = store

    def resolve(self, name: str, color: RGBColor | None = None) -> CalendarHandle | None:
        """Return the calendar called *name*, creating it when absent.

        Returns ``None`` only when creation failed and the store has no default
        calendar either; callers then leave the event's calendar unassigned.
        Not free of side effects: a miss creates and persists a calendar.
        """
        calendar = self._store.find_calendar(name)
        if calendar is not None:
            return calendar

        for calendar in self._store.list_calendars(EntityType.event):
            if calendar.title == name:
                return calendar

        default_calendar = self._store.default_calendar_for_new_events()
        calendar = CalendarHandle(
            title=name,
            color=color,
            source=default_calendar.source if default_calendar is not None else None,
        )
        return self._save_new_calendar(calendar)

    def _save_new_calendar(self, calendar: CalendarHandle) -> CalendarHandle | None:
        candidates = self._candidate_sources(calendar.source)
        for source in itertools.islice(candidates, MAX_CALENDAR_SAVE_ATTEMPTS):
            calendar.source = source
            try:
                self._store.save_calendar(calendar, commit=True)
            except PersistenceFailedError as exc:
                logger.warning(
                    "Failed to save calendar %r on source %r: %s",
                    calendar.title,
                    source.identifier if source is not None else None,
                    exc,
                )
                continue
            logger.info(
                "Created calendar %r (%s) on source %r",
                calendar.title,
                calendar.identifier,
                source.identifier if source is not None else None,
            )
            return calendar

        fallback = self._store.default_calendar_for_new_events()
        logger.warning(
            "Could not create calendar %r; falling back to default calendar %r",
            calendar.title,
            fallback.title if fallback is not None else None,
        )
        return fallback

    def _candidate_sources(self, primary: Source | None) -> Iterator[Source | None]:
        """Yield the primary source, then (lazily) the first local source."""
        yield primary
        local = next((source for source in self._store.list_sources() if source.is_local), None)
        if local is not None:
            yield local

"""Event composition, persistence and bulk removal.

``EventScheduler`` turns an ``EventRequest`` into a store-ready
``EventRecord``, places it on the calendar chosen by ``CalendarResolver`` and
saves it. Results are delivered through a completion callback invoked exactly
once, before ``add_event`` returns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta

from calkeeper.config import SchedulerConfig
from calkeeper.errors import CalendarStoreError, EventNotFoundError, PersistenceFailedError
from calkeeper.models import (
    AbsoluteAlarm,
    Alarm,
    EventRecord,
    EventRequest,
    EventSpan,
    RecurrenceEnd,
    RecurrenceRule,
    RelativeAlarm,
)
from calkeeper.resolver import CalendarResolver
from calkeeper.store import CalendarStore, ChangeCallback

logger = logging.getLogger(__name__)

# Length of an event whose request carries no end date.
DEFAULT_EVENT_DURATION = timedelta(seconds=3600)

# Receives (event_id, error); exactly one of them is set.
EventCompletion = Callable[[str | None, CalendarStoreError | None], None]


@dataclass(frozen=True)
class AddEventResult:
    """Outcome of ``EventScheduler.add_event``: an identifier or an error, never both."""

    event_id: str | None = None
    error: CalendarStoreError | None = None

    def __post_init__(self) -> None:
        if (self.event_id is None) == (self.error is None):
            raise ValueError("exactly one of event_id or error must be set")

    @property
    def ok(self) -> bool:
        return self.error is None


class EventScheduler:
    """Create and remove events on the application's own calendar.

    Not thread-safe: calls are expected to be serialized by the owner of
    *store*.
    """

    def __init__(
        self,
        store: CalendarStore,
        config: SchedulerConfig | None = None,
        *,
        on_store_changed: ChangeCallback | None = None,
    ) -> None:
        self._store = store
        self._config = config if config is not None else SchedulerConfig()
        self._resolver = CalendarResolver(store)
        self._on_store_changed = on_store_changed
        store.subscribe(self._handle_store_changed)

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    def compose_event(self, request: EventRequest) -> EventRecord:
        """Build the normalized record for *request* without touching the store."""
        start = request.start
        end = request.end
        if end is None and start is not None:
            end = start + DEFAULT_EVENT_DURATION

        event = EventRecord(
            title=request.title,
            start=start,
            end=end,
            all_day=request.all_day if request.all_day is not None else False,
            timezone=request.timezone or self._config.timezone,
            notes=request.notes,
            location=request.location,
        )

        if request.recurrence is not None:
            # The request's own end bounds the series unless overridden.
            recurrence_end_date = request.recurrence_end or request.end
            event.add_recurrence_rule(
                RecurrenceRule(
                    frequency=request.recurrence,
                    interval=1,
                    end=(
                        RecurrenceEnd(end_date=recurrence_end_date)
                        if recurrence_end_date is not None
                        else None
                    ),
                )
            )

        for alarm in request.alarms:
            if isinstance(alarm, AbsoluteAlarm):
                event.add_alarm(Alarm(absolute_date=alarm.at))
            elif isinstance(alarm, RelativeAlarm) and not alarm.is_disabled:
                event.add_alarm(Alarm(relative_offset=alarm.offset_seconds))

        return event

    def add_event(
        self,
        request: EventRequest,
        completion: EventCompletion | None = None,
    ) -> AddEventResult:
        """Compose, place and save a new event.

        Calendar creation problems are absorbed by the resolver; save failures
        and an unavailable store come back as ``AddEventResult.error`` and are
        passed to *completion*.
        """
        event = self.compose_event(request)
        try:
            event.calendar = self._resolver.resolve(
                self._config.calendar_name, self._config.color
            )
            self._store.save_event(event, span=EventSpan.this_event)
        except CalendarStoreError as exc:
            logger.warning("Failed to save event %r: %s", event.title, exc)
            result = AddEventResult(error=exc)
        else:
            if event.event_id:
                logger.debug("Saved event %r as %s", event.title, event.event_id)
                result = AddEventResult(event_id=event.event_id)
            else:
                result = AddEventResult(
                    error=PersistenceFailedError("Store did not assign an event identifier")
                )

        if completion is not None:
            completion(result.event_id, result.error)
        return result

    def remove_events(self, event_ids: Iterable[str | None]) -> None:
        """Best-effort removal of this and future occurrences of each event.

        ``None`` and empty identifiers are ignored and duplicates collapse.
        Unknown identifiers and rejected removals are skipped silently, so
        callers cannot tell them apart from successes. An unavailable store
        still raises ``StoreUnavailableError``.
        """
        unique_ids = {event_id for event_id in event_ids if event_id is not None}
        for event_id in unique_ids:
            if not event_id:
                continue
            event = self._store.find_event(event_id)
            if event is None:
                continue
            try:
                self._store.remove_event(event, span=EventSpan.future_events)
            except (PersistenceFailedError, EventNotFoundError) as exc:
                logger.debug("Ignoring failed removal of event %s: %s", event_id, exc)

    def _handle_store_changed(self) -> None:
        logger.debug("Calendar store changed")
        # TODO: reconcile events of ours that were deleted by another process.
        if self._on_store_changed is not None:
            self._on_store_changed()

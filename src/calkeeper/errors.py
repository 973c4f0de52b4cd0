"""Error hierarchy shared by stores, the resolver and the scheduler."""

from __future__ import annotations


class CalendarStoreError(RuntimeError):
    """Base error raised by calendar store operations."""


class StoreUnavailableError(CalendarStoreError):
    """Raised when the store is unreachable or access has not been granted."""


class PersistenceFailedError(CalendarStoreError):
    """Raised when the store rejects a save or remove."""


class EventNotFoundError(CalendarStoreError):
    """Raised when an event identifier does not resolve to a stored event."""

    def __init__(self, event_id: str) -> None:
        self.event_id = event_id
        super().__init__(f"Event not found: {event_id!r}")

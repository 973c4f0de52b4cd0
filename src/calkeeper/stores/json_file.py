"""Calendar store persisted to a single JSON document.

Behaves like ``InMemoryCalendarStore`` and rewrites the document after every
committed change. The file is created on the first commit.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from calkeeper.errors import PersistenceFailedError, StoreUnavailableError
from calkeeper.models import CalendarHandle, EventRecord, Source
from calkeeper.stores.memory import DEFAULT_LOCAL_SOURCE, InMemoryCalendarStore

logger = logging.getLogger(__name__)


class _StoreSnapshot(BaseModel):
    """On-disk layout of a JSON calendar store."""

    model_config = ConfigDict(extra="forbid")

    sources: list[Source] = Field(default_factory=lambda: [DEFAULT_LOCAL_SOURCE])
    calendars: list[CalendarHandle] = Field(default_factory=list)
    events: list[EventRecord] = Field(default_factory=list)
    default_calendar_id: str | None = None


class JsonFileCalendarStore(InMemoryCalendarStore):
    """Calendar store backed by a JSON file at *path*."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        snapshot = self._read_snapshot()
        super().__init__(sources=snapshot.sources)
        for calendar in snapshot.calendars:
            self._calendars[calendar.identifier] = calendar
        for event in snapshot.events:
            if event.event_id is not None:
                self._events[event.event_id] = event
        self._default_calendar_id = snapshot.default_calendar_id

    def _read_snapshot(self) -> _StoreSnapshot:
        if not self.path.exists():
            return _StoreSnapshot()
        try:
            return _StoreSnapshot.model_validate_json(self.path.read_bytes())
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot read calendar store {self.path}: {exc}") from exc
        except ValidationError as exc:
            raise StoreUnavailableError(
                f"Calendar store {self.path} is corrupt: {exc.error_count()} invalid field(s)"
            ) from exc

    def _commit(self) -> None:
        snapshot = _StoreSnapshot(
            sources=self._sources,
            calendars=list(self._calendars.values()),
            events=list(self._events.values()),
            default_calendar_id=self._default_calendar_id,
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(snapshot.model_dump_json(indent=2))
        except OSError as exc:
            raise PersistenceFailedError(f"Cannot write calendar store {self.path}: {exc}") from exc
        logger.debug("Wrote calendar store snapshot to %s", self.path)
        super()._commit()

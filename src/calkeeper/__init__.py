"""calkeeper — keep an application's events on a dedicated calendar.

Public entry points:
- ``EventScheduler``: compose, persist and remove events
- ``CalendarResolver``: find or create the target calendar
- ``InMemoryCalendarStore`` / ``JsonFileCalendarStore``: bundled stores
"""

from __future__ import annotations

from calkeeper.config import SchedulerConfig
from calkeeper.errors import (
    CalendarStoreError,
    EventNotFoundError,
    PersistenceFailedError,
    StoreUnavailableError,
)
from calkeeper.models import (
    AbsoluteAlarm,
    AlarmPreset,
    EventRecord,
    EventRequest,
    RecurrenceFrequency,
    RelativeAlarm,
)
from calkeeper.resolver import CalendarResolver
from calkeeper.scheduler import AddEventResult, EventScheduler
from calkeeper.stores import InMemoryCalendarStore, JsonFileCalendarStore

__version__ = "0.1.0"

__all__ = [
    "AbsoluteAlarm",
    "AddEventResult",
    "AlarmPreset",
    "CalendarResolver",
    "CalendarStoreError",
    "EventNotFoundError",
    "EventRecord",
    "EventRequest",
    "EventScheduler",
    "InMemoryCalendarStore",
    "JsonFileCalendarStore",
    "PersistenceFailedError",
    "RecurrenceFrequency",
    "RelativeAlarm",
    "SchedulerConfig",
    "StoreUnavailableError",
    "__version__",
]

"""Shared fixtures for the calkeeper test suite."""

from __future__ import annotations

import logging

import pytest

from calkeeper.config import SchedulerConfig
from calkeeper.models import CalendarHandle, RGBColor, Source, SourceType
from calkeeper.scheduler import EventScheduler
from calkeeper.stores import InMemoryCalendarStore

LOCAL_SOURCE = Source(identifier="local", title="On My Device", source_type=SourceType.local)
CALDAV_SOURCE = Source(identifier="caldav-1", title="Work CalDAV", source_type=SourceType.caldav)
SUBSCRIBED_SOURCE = Source(
    identifier="holidays", title="Holidays", source_type=SourceType.subscribed
)


@pytest.fixture(autouse=True)
def _reset_root_logging():
    """Drop handlers installed by configure_logging() so tests stay isolated."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.WARNING)


@pytest.fixture
def store() -> InMemoryCalendarStore:
    """Store with a local source and a CalDAV default calendar."""
    memory_store = InMemoryCalendarStore(sources=[CALDAV_SOURCE, LOCAL_SOURCE])
    memory_store.add_calendar(
        CalendarHandle(identifier="home-cal", title="Home", source=CALDAV_SOURCE),
        default=True,
    )
    return memory_store


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    return SchedulerConfig(
        calendar_name="MyCalendar",
        timezone="UTC",
        color=RGBColor(red=255, green=0, blue=255),
    )


@pytest.fixture
def scheduler(store: InMemoryCalendarStore, scheduler_config: SchedulerConfig) -> EventScheduler:
    return EventScheduler(store, scheduler_config)

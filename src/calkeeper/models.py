"""Data model for calendars, event requests and store-ready event records.

This module defines:
- ``AlarmSpec``: tagged union of ``AbsoluteAlarm`` and ``RelativeAlarm`` inputs
- ``AlarmPreset`` / ``RecurrenceFrequency``: canonical choices with display labels
- ``EventRequest``: caller-facing input aggregate for a new event
- ``CalendarHandle`` / ``Source``: writable calendar and its owning account
- ``EventRecord``: normalized event handed to a store for a single save
"""

from __future__ import annotations

import enum
import math
import re
import uuid
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Relative offset meaning "no alarm"; such alarms are skipped, never attached.
NO_ALARM_OFFSET = -1.0

_ALARM_VALUE_ERROR = "alarm must be a datetime, an offset in seconds or a preset label"
_HEX_COLOR_PATTERN = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")


def ensure_valid_timezone(value: str) -> None:
    """Raise ``ValueError`` unless *value* names an IANA timezone."""
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"timezone must be a valid IANA timezone: {value}") from exc


# ---------------------------------------------------------------------------
# Alarms
# ---------------------------------------------------------------------------


class AlarmPreset(enum.IntEnum):
    """Canonical relative alarm offsets, in seconds from the event start."""

    NONE = -1
    AT_TIME_OF_EVENT = 0
    FIVE_MINUTES_BEFORE = -300
    FIFTEEN_MINUTES_BEFORE = -900
    THIRTY_MINUTES_BEFORE = -1800
    ONE_HOUR_BEFORE = -3600
    TWO_HOURS_BEFORE = -7200
    ONE_DAY_BEFORE = -86400
    TWO_DAYS_BEFORE = -172800

    @property
    def label(self) -> str:
        return _ALARM_PRESET_LABELS[self]

    @classmethod
    def labels(cls) -> list[str]:
        return [preset.label for preset in cls]

    @classmethod
    def from_label(cls, label: str) -> AlarmPreset:
        """Return the preset displayed as *label*, or ``NONE`` for unknown text."""
        for preset, preset_label in _ALARM_PRESET_LABELS.items():
            if preset_label == label:
                return preset
        return cls.NONE


_ALARM_PRESET_LABELS: dict[AlarmPreset, str] = {
    AlarmPreset.NONE: "Nothing",
    AlarmPreset.AT_TIME_OF_EVENT: "At time of event",
    AlarmPreset.FIVE_MINUTES_BEFORE: "5 minutes before",
    AlarmPreset.FIFTEEN_MINUTES_BEFORE: "15 minutes before",
    AlarmPreset.THIRTY_MINUTES_BEFORE: "30 minutes before",
    AlarmPreset.ONE_HOUR_BEFORE: "1 hour before",
    AlarmPreset.TWO_HOURS_BEFORE: "2 hours before",
    AlarmPreset.ONE_DAY_BEFORE: "1 day before",
    AlarmPreset.TWO_DAYS_BEFORE: "2 days before",
}


class AbsoluteAlarm(BaseModel):
    """Alarm that fires at a fixed point in time."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["absolute"] = "absolute"
    at: datetime


class RelativeAlarm(BaseModel):
    """Alarm that fires at an offset from the event start.

    Negative offsets fire before the start, ``0`` at the start, and the
    ``NO_ALARM_OFFSET`` sentinel means no alarm at all.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["relative"] = "relative"
    offset_seconds: float = Field(allow_inf_nan=False)

    @property
    def is_disabled(self) -> bool:
        return self.offset_seconds == NO_ALARM_OFFSET


AlarmSpec = Annotated[AbsoluteAlarm | RelativeAlarm, Field(discriminator="kind")]


def alarm_from_value(value: Any) -> AbsoluteAlarm | RelativeAlarm:
    """Classify a loosely-typed alarm value into an ``AlarmSpec``.

    Accepts datetimes (absolute), ints/floats/``AlarmPreset`` members
    (relative offsets in seconds) and preset labels such as
    ``"15 minutes before"``. Anything else raises ``ValueError``.
    """
    if isinstance(value, (AbsoluteAlarm, RelativeAlarm)):
        return value
    if isinstance(value, bool):
        raise ValueError(f"{_ALARM_VALUE_ERROR}: {value!r}")
    if isinstance(value, datetime):
        return AbsoluteAlarm(at=value)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"alarm offset must be a finite number of seconds: {value!r}")
        return RelativeAlarm(offset_seconds=float(value))
    if isinstance(value, str):
        normalized = value.strip()
        if normalized not in AlarmPreset.labels():
            raise ValueError(f"unknown alarm preset label: {value!r}")
        return RelativeAlarm(offset_seconds=float(AlarmPreset.from_label(normalized)))
    raise ValueError(f"{_ALARM_VALUE_ERROR}: {value!r}")


# ---------------------------------------------------------------------------
# Recurrence
# ---------------------------------------------------------------------------

NOT_REPEATED_LABEL = "Not repeated"


class RecurrenceFrequency(StrEnum):
    """Repeat frequency of a recurring event; absence means not repeated."""

    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"

    @property
    def label(self) -> str:
        return _FREQUENCY_LABELS[self]


_FREQUENCY_LABELS: dict[RecurrenceFrequency, str] = {
    RecurrenceFrequency.daily: "Everyday",
    RecurrenceFrequency.weekly: "Every week",
    RecurrenceFrequency.monthly: "Every month",
    RecurrenceFrequency.yearly: "Every year",
}


def frequency_labels() -> list[str]:
    return [NOT_REPEATED_LABEL, *_FREQUENCY_LABELS.values()]


def frequency_from_label(label: str | None) -> RecurrenceFrequency | None:
    """Map a display label to its frequency; unknown labels mean not repeated."""
    if label is None:
        return None
    for frequency, frequency_label in _FREQUENCY_LABELS.items():
        if frequency_label == label:
            return frequency
    return None


class RecurrenceEnd(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    end_date: datetime


class RecurrenceRule(BaseModel):
    """A single repeat rule; the store never expands it into occurrences."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1)
    end: RecurrenceEnd | None = None


# ---------------------------------------------------------------------------
# Calendars and sources
# ---------------------------------------------------------------------------


class RGBColor(BaseModel):
    """Display color of a calendar.

    Accepts ``"#RRGGBB"`` strings and ``(r, g, b)`` sequences as well as the
    field form.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    red: int = Field(ge=0, le=255)
    green: int = Field(ge=0, le=255)
    blue: int = Field(ge=0, le=255)

    @model_validator(mode="before")
    @classmethod
    def _coerce_shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            match = _HEX_COLOR_PATTERN.fullmatch(value.strip())
            if match is None:
                raise ValueError(f"color must be a '#RRGGBB' hex string: {value!r}")
            red, green, blue = (int(part, 16) for part in match.groups())
            return {"red": red, "green": green, "blue": blue}
        if isinstance(value, (list, tuple)):
            if len(value) != 3:
                raise ValueError("color sequences must have exactly three components")
            red, green, blue = value
            return {"red": red, "green": green, "blue": blue}
        return value

    @property
    def hex(self) -> str:
        return f"#{self.red:02X}{self.green:02X}{self.blue:02X}"


MAGENTA = RGBColor(red=255, green=0, blue=255)


class SourceType(StrEnum):
    """Kind of account that owns calendars."""

    local = "local"
    exchange = "exchange"
    caldav = "caldav"
    mobileme = "mobileme"
    subscribed = "subscribed"
    birthdays = "birthdays"


class EntityType(StrEnum):
    event = "event"
    reminder = "reminder"


class Source(BaseModel):
    """Store account that owns calendars (local, CalDAV, Exchange, ...)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    identifier: str = Field(min_length=1)
    title: str
    source_type: SourceType

    @property
    def is_local(self) -> bool:
        return self.source_type is SourceType.local


class CalendarHandle(BaseModel):
    """Reference to one calendar collection within a store."""

    model_config = ConfigDict(extra="forbid")

    identifier: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    color: RGBColor | None = None
    source: Source | None = None
    entity_type: EntityType = EntityType.event
    allows_modifications: bool = True


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventSpan(StrEnum):
    """Scope of a mutation on a recurring series."""

    this_event = "this_event"
    future_events = "future_events"


class GeoLocation(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class StructuredLocation(BaseModel):
    """Named place with optional coordinates and geofence radius (meters)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    geo: GeoLocation | None = None
    radius: float | None = Field(default=None, ge=0)


class Alarm(BaseModel):
    """Alarm attached to a stored event: exactly one of absolute or relative."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    absolute_date: datetime | None = None
    relative_offset: float | None = Field(default=None, allow_inf_nan=False)

    @model_validator(mode="after")
    def _validate_shape(self) -> Alarm:
        has_absolute = self.absolute_date is not None
        has_relative = self.relative_offset is not None
        if has_absolute == has_relative:
            raise ValueError("exactly one of absolute_date or relative_offset must be provided")
        return self


class EventRequest(BaseModel):
    """Caller input for a new event.

    ``alarms`` accepts ``AlarmSpec`` instances or raw values understood by
    ``alarm_from_value`` (datetimes, offsets in seconds, preset labels).
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    recurrence_end: datetime | None = None
    alarms: list[AlarmSpec] = Field(default_factory=list)
    recurrence: RecurrenceFrequency | None = None
    all_day: bool | None = None
    notes: str | None = None
    location: StructuredLocation | None = None
    timezone: str | None = None

    @field_validator("alarms", mode="before")
    @classmethod
    def _classify_alarms(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise ValueError("alarms must be a list")
        return [item if isinstance(item, dict) else alarm_from_value(item) for item in value]

    @field_validator("timezone")
    @classmethod
    def _normalize_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        ensure_valid_timezone(normalized)
        return normalized

    @field_validator("title", "notes")
    @classmethod
    def _normalize_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class EventRecord(BaseModel):
    """Normalized, store-ready event.

    ``event_id`` stays ``None`` until a store accepts the record. ``calendar``
    may be ``None``, in which case the store places the event on its default
    calendar.
    """

    model_config = ConfigDict(extra="forbid")

    event_id: str | None = None
    calendar: CalendarHandle | None = None
    title: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    all_day: bool = False
    timezone: str | None = None
    notes: str | None = None
    location: StructuredLocation | None = None
    recurrence_rules: list[RecurrenceRule] = Field(default_factory=list)
    alarms: list[Alarm] = Field(default_factory=list)

    def add_alarm(self, alarm: Alarm) -> None:
        self.alarms.append(alarm)

    def add_recurrence_rule(self, rule: RecurrenceRule) -> None:
        self.recurrence_rules.append(rule)

    @property
    def has_recurrence_rules(self) -> bool:
        return bool(self.recurrence_rules)

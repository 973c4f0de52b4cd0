"""Calendar store implementations bundled with calkeeper."""

from __future__ import annotations

from calkeeper.stores.json_file import JsonFileCalendarStore
from calkeeper.stores.memory import InMemoryCalendarStore

__all__ = ["InMemoryCalendarStore", "JsonFileCalendarStore"]

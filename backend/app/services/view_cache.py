from __future__ import annotations

from threading import Lock
import time
from typing import Any, Callable

from app.core.config import get_settings

MASTER_SCHEDULE_KEY = "schedule:master"


def teacher_schedule_key(teacher_id: str) -> str:
    return f"schedule:teacher:{teacher_id}"


class InMemoryViewCache:
    """Process-local cache for rendered schedule projections.

    Entries expire after ``ttl_seconds`` and are dropped eagerly by the
    schedule mutators through :func:`invalidate_schedule_views`.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = Lock()
        # Bumped by every invalidation; a build that overlaps one is not stored.
        self._generation = 0

    def get_or_build(self, key: str, builder: Callable[[], Any], *, ttl_seconds: int) -> Any:
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] > now:
                return entry[1]
            generation = self._generation
        value = builder()
        if ttl_seconds > 0:
            with self._lock:
                if generation == self._generation:
                    self._entries[key] = (now + ttl_seconds, value)
        return value

    def invalidate(self, *keys: str) -> None:
        with self._lock:
            self._generation += 1
            for key in keys:
                self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> None:
        with self._lock:
            self._generation += 1
            for key in [key for key in self._entries if key.startswith(prefix)]:
                self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()


_cache = InMemoryViewCache()


def cached_view(key: str, builder: Callable[[], Any]) -> Any:
    return _cache.get_or_build(key, builder, ttl_seconds=get_settings().schedule_view_cache_ttl_seconds)


def invalidate_schedule_views(*teacher_ids: str | None) -> None:
    """Drop the master view and the given teachers' grids; no ids drops every grid."""
    _cache.invalidate(MASTER_SCHEDULE_KEY)
    ids = [teacher_id for teacher_id in teacher_ids if teacher_id]
    if ids:
        _cache.invalidate(*(teacher_schedule_key(teacher_id) for teacher_id in ids))
    else:
        _cache.invalidate_prefix("schedule:teacher:")


def clear_view_cache() -> None:
    _cache.clear()

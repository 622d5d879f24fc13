from __future__ import annotations

import time
from datetime import date, datetime
from typing import TYPE_CHECKING

from ..menus.models import DaySnapshot, DaySnapshotView

if TYPE_CHECKING:
    from .store import MenuStore

_cache: dict[tuple[str, date], dict] = {}
_hits: int = 0
_misses: int = 0
_DEFAULT_TTL = 300  # 5 minutes


def cache_get(restaurant: str, day: date) -> DaySnapshot | None:
    global _hits, _misses
    key = (restaurant, day)
    entry = _cache.get(key)
    if entry and time.time() - entry["created_at"] < _DEFAULT_TTL:
        _hits += 1
        return entry["value"]
    if entry:
        del _cache[key]
    _misses += 1
    return None


def cache_set(snapshot: DaySnapshot) -> None:
    _cache[(snapshot.restaurant, snapshot.date)] = {"value": snapshot, "created_at": time.time()}


def invalidate_restaurant(restaurant: str) -> None:
    for key in [k for k in list(_cache) if k[0] == restaurant]:
        _cache.pop(key, None)


def get_day(
    store: MenuStore,
    restaurant: str,
    day: date,
    now: datetime | None = None,
) -> DaySnapshotView | None:
    """
    Read a day snapshot through the cache.

    Only stored snapshots are cached; ``stale`` is recomputed on every read.
    """
    snapshot = cache_get(restaurant, day)
    if snapshot is None:
        snapshot = store.load_day(restaurant, day)
        if snapshot is None:
            return None
        cache_set(snapshot)
    return store.view(snapshot, now)


def get_cache_stats() -> dict:
    total = _hits + _misses
    return {
        "size": len(_cache),
        "hits": _hits,
        "misses": _misses,
        "hit_rate": round(_hits / total * 100, 1) if total > 0 else 0.0,
    }


def clear_cache() -> None:
    global _hits, _misses
    _cache.clear()
    _hits = 0
    _misses = 0

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from lunchmenu.cache.day_cache import clear_cache, get_cache_stats, get_day, invalidate_restaurant
from lunchmenu.cache.store import MenuStore, StoreConfig
from lunchmenu.menus.models import DaySnapshot, MenuEntry

NOW = datetime(2025, 9, 15, 12, 0, tzinfo=timezone.utc)
MONDAY = date(2025, 9, 15)


def _store_with_monday(fetched_at: datetime = NOW) -> MenuStore:
    store = MenuStore(StoreConfig(db_path=":memory:"))
    entry = MenuEntry(restaurant="canthia", date=MONDAY, dish_name="Lounas", student_price="2,95")
    store.put_snapshots([
        DaySnapshot(restaurant="canthia", date=MONDAY, entries=[entry], fetched_at=fetched_at)
    ])
    return store


def test_cache_miss_then_hit():
    clear_cache()
    store = _store_with_monday()

    first = get_day(store, "canthia", MONDAY, now=NOW)
    assert first is not None
    assert get_cache_stats()["misses"] == 1

    second = get_day(store, "canthia", MONDAY, now=NOW)
    assert second == first
    stats = get_cache_stats()
    assert stats["hits"] == 1
    assert stats["size"] == 1
    assert stats["hit_rate"] == 50.0


def test_not_found_is_not_cached():
    clear_cache()
    store = MenuStore(StoreConfig(db_path=":memory:"))
    assert get_day(store, "canthia", MONDAY, now=NOW) is None
    assert get_cache_stats()["size"] == 0


def test_stale_flag_recomputed_on_cached_reads():
    clear_cache()
    store = _store_with_monday(fetched_at=NOW - timedelta(minutes=30))

    assert get_day(store, "canthia", MONDAY, now=NOW).stale is False
    assert get_day(store, "canthia", MONDAY, now=NOW + timedelta(hours=1)).stale is True


def test_direct_store_write_is_visible_to_cached_reads():
    clear_cache()
    store = _store_with_monday()
    get_day(store, "canthia", MONDAY, now=NOW)

    store.put(MenuEntry(restaurant="canthia", date=MONDAY, dish_name="Keitto", sort_order=2), NOW)
    assert len(get_day(store, "canthia", MONDAY, now=NOW).entries) == 2


def test_invalidate_restaurant_drops_only_that_restaurant():
    clear_cache()
    store = _store_with_monday()
    store.put(MenuEntry(restaurant="snelmannia", date=MONDAY, dish_name="Keitto"), NOW)
    get_day(store, "canthia", MONDAY, now=NOW)
    get_day(store, "snelmannia", MONDAY, now=NOW)
    assert get_cache_stats()["size"] == 2

    invalidate_restaurant("canthia")
    assert get_cache_stats()["size"] == 1
    get_day(store, "snelmannia", MONDAY, now=NOW)
    assert get_cache_stats()["hits"] == 1

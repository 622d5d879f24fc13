from __future__ import annotations

import json
import logging
import sqlite3
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable

from ..env import getenv
from ..menus.models import DaySnapshot, DaySnapshotView, MenuEntry
from .day_cache import invalidate_restaurant

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent / "data" / "menus.db"

SCHEMA = """
CREATE TABLE IF NOT EXISTS menu_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    restaurant TEXT NOT NULL,
    date TEXT NOT NULL,
    weekday TEXT,
    dish_name TEXT NOT NULL,
    student_price TEXT,
    components TEXT NOT NULL DEFAULT '[]',
    sort_order INTEGER NOT NULL DEFAULT 1,
    fetched_at TEXT NOT NULL,
    UNIQUE(restaurant, date, dish_name, components)
);
CREATE INDEX IF NOT EXISTS idx_menu_entries_restaurant_date ON menu_entries(restaurant, date);
CREATE TABLE IF NOT EXISTS day_refreshes (
    restaurant TEXT NOT NULL,
    date TEXT NOT NULL,
    fetched_at TEXT NOT NULL,
    PRIMARY KEY (restaurant, date)
);
"""

_INSERT_ENTRY = """
INSERT OR IGNORE INTO menu_entries
    (restaurant, date, weekday, dish_name, student_price, components, sort_order, fetched_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""

_UPSERT_REFRESH = """
INSERT INTO day_refreshes (restaurant, date, fetched_at) VALUES (?, ?, ?)
ON CONFLICT(restaurant, date) DO UPDATE SET fetched_at = excluded.fetched_at
"""

_PRICE_AS_REAL = "CAST(REPLACE(student_price, ',', '.') AS REAL)"


@dataclass(frozen=True)
class StoreConfig:
    db_path: str = field(default_factory=lambda: getenv("LUNCHMENU_DB_PATH", str(_DEFAULT_DB_PATH)))
    stale_after: timedelta = field(
        default_factory=lambda: timedelta(seconds=float(getenv("LUNCHMENU_STALE_AFTER", "3600")))
    )


DEFAULT_STORE_CONFIG = StoreConfig()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _row_to_entry(row: sqlite3.Row) -> MenuEntry:
    return MenuEntry(
        restaurant=row["restaurant"],
        date=date.fromisoformat(row["date"]),
        weekday=row["weekday"],
        dish_name=row["dish_name"],
        student_price=row["student_price"],
        components=json.loads(row["components"]) if row["components"] else [],
        sort_order=row["sort_order"],
    )


class MenuStore:
    """
    Per-entry menu store on SQLite.

    Entries are insert-or-ignore on ``(restaurant, date, dish_name,
    components)``; re-inserting an identical entry is a no-op. The last
    successful refresh time of each (restaurant, date) is kept separately
    and drives the ``stale`` flag.
    """

    def __init__(self, config: StoreConfig = DEFAULT_STORE_CONFIG) -> None:
        self.config = config
        if config.db_path != ":memory:":
            Path(config.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(config.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        if config.db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.executescript(SCHEMA)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ── Writes ───────────────────────────────────────────────────────────

    @staticmethod
    def _entry_params(entry: MenuEntry, fetched_at: datetime) -> tuple:
        return (
            entry.restaurant,
            entry.date.isoformat(),
            entry.weekday,
            entry.dish_name,
            entry.student_price,
            json.dumps(entry.components, ensure_ascii=False),
            entry.sort_order,
            _as_utc(fetched_at).isoformat(),
        )

    def put(self, entry: MenuEntry, fetched_at: datetime | None = None) -> bool:
        """Insert one entry; returns False when it was already stored."""
        fetched_at = fetched_at or _utcnow()
        with self._lock, self._conn:
            cursor = self._conn.execute(_INSERT_ENTRY, self._entry_params(entry, fetched_at))
            self._conn.execute(
                _UPSERT_REFRESH,
                (entry.restaurant, entry.date.isoformat(), _as_utc(fetched_at).isoformat()),
            )
        invalidate_restaurant(entry.restaurant)
        return cursor.rowcount == 1

    def put_snapshots(self, snapshots: Iterable[DaySnapshot]) -> int:
        """
        Persist every snapshot of one refresh in a single transaction.

        Returns the number of rows that were new. Any storage error rolls the
        whole refresh back and propagates.
        """
        snapshots = list(snapshots)
        inserted = 0
        with self._lock, self._conn:
            for snapshot in snapshots:
                for entry in snapshot.entries:
                    cursor = self._conn.execute(
                        _INSERT_ENTRY, self._entry_params(entry, snapshot.fetched_at)
                    )
                    inserted += cursor.rowcount
                self._conn.execute(
                    _UPSERT_REFRESH,
                    (
                        snapshot.restaurant,
                        snapshot.date.isoformat(),
                        _as_utc(snapshot.fetched_at).isoformat(),
                    ),
                )
        for restaurant in {s.restaurant for s in snapshots}:
            invalidate_restaurant(restaurant)
        return inserted

    # ── Reads ────────────────────────────────────────────────────────────

    def load_day(self, restaurant: str, day: date) -> DaySnapshot | None:
        """Stored snapshot for a day, or ``None`` if it was never refreshed."""
        with self._lock:
            refreshed = self._conn.execute(
                "SELECT fetched_at FROM day_refreshes WHERE restaurant = ? AND date = ?",
                (restaurant, day.isoformat()),
            ).fetchone()
            if refreshed is None:
                return None
            rows = self._conn.execute(
                "SELECT * FROM menu_entries WHERE restaurant = ? AND date = ? "
                "ORDER BY sort_order, id",
                (restaurant, day.isoformat()),
            ).fetchall()
        return DaySnapshot(
            restaurant=restaurant,
            date=day,
            entries=[_row_to_entry(r) for r in rows],
            fetched_at=datetime.fromisoformat(refreshed["fetched_at"]),
        )

    def is_stale(self, fetched_at: datetime, now: datetime | None = None) -> bool:
        now = now or _utcnow()
        return _as_utc(now) - _as_utc(fetched_at) > self.config.stale_after

    def view(self, snapshot: DaySnapshot, now: datetime | None = None) -> DaySnapshotView:
        return DaySnapshotView(
            **snapshot.model_dump(),
            stale=self.is_stale(snapshot.fetched_at, now),
        )

    def get(self, restaurant: str, day: date, now: datetime | None = None) -> DaySnapshotView | None:
        snapshot = self.load_day(restaurant, day)
        if snapshot is None:
            return None
        return self.view(snapshot, now)

    def query_all(
        self,
        min_price: float | None = None,
        max_price: float | None = None,
    ) -> list[MenuEntry]:
        """All stored entries, newest date first, optionally within a price range."""
        clauses: list[str] = []
        params: list[float] = []
        if min_price is not None:
            clauses.append(f"{_PRICE_AS_REAL} >= ?")
            params.append(min_price)
        if max_price is not None:
            clauses.append(f"{_PRICE_AS_REAL} <= ?")
            params.append(max_price)
        if clauses:
            clauses.insert(0, "student_price IS NOT NULL")

        sql = "SELECT * FROM menu_entries"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY date DESC, restaurant, sort_order, id"

        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [_row_to_entry(r) for r in rows]

    def restaurants(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT DISTINCT restaurant FROM menu_entries ORDER BY restaurant"
            ).fetchall()
        return [r["restaurant"] for r in rows]

    def stats(self, restaurants: Iterable[str] | None = None) -> dict:
        with self._lock:
            rows = self._conn.execute(
                "SELECT restaurant, COUNT(*) AS count FROM menu_entries GROUP BY restaurant"
            ).fetchall()
        counts = {r["restaurant"]: r["count"] for r in rows}
        names = list(restaurants) if restaurants is not None else []
        names += sorted(r for r in counts if r not in names)

        by_restaurant = [{"restaurant": r, "count": counts.get(r, 0)} for r in names]
        return {
            "total": sum(counts.values()),
            "by_restaurant": by_restaurant,
        }


_store: MenuStore | None = None


def get_store() -> MenuStore:
    """Return the process-wide store, opening it on first call."""
    global _store
    if _store is None:
        _store = MenuStore()
        logger.info("Opened menu store at %s", _store.config.db_path)
    return _store

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from ..menus.models import DaySnapshot
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig
from .errors import UpstreamShapeMismatch
from .normalize import ParsedDay, ParsedItem, build_snapshot

logger = logging.getLogger(__name__)


@dataclass
class FeedMenu:
    restaurant_name: str | None
    days: list[DaySnapshot] = field(default_factory=list)


def clean_restaurant_name(name: str | None, prefix: str) -> str | None:
    if name is None:
        return None
    if prefix:
        name = name.replace(prefix, "")
    return name.strip() or None


def _parse_feed_date(raw: Any) -> date | None:
    # Feed dates look like "2025-09-15T00:00:00+03:00"
    if not isinstance(raw, str) or len(raw) < 10:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def _parse_sort_order(raw: Any) -> int | None:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _parse_components(raw: Any) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, list):
        return [str(c) for c in raw if c is not None]
    return []


def _parse_item(raw: Any) -> ParsedItem | None:
    if not isinstance(raw, dict):
        return None
    return ParsedItem(
        name=str(raw.get("Name") or raw.get("name") or ""),
        price=str(raw.get("Price") or raw.get("price") or ""),
        components=_parse_components(raw.get("Components")),
        sort_order=_parse_sort_order(raw.get("SortOrder")),
    )


def parse_feed_days(payload: Any) -> list[ParsedDay]:
    """Read ``MenusForDays`` into parsed days, skipping undated or empty days."""
    if not isinstance(payload, dict):
        raise UpstreamShapeMismatch("feed payload is not a JSON object")
    raw_days = payload.get("MenusForDays")
    if not isinstance(raw_days, list):
        raise UpstreamShapeMismatch("feed payload has no MenusForDays list")

    days: list[ParsedDay] = []
    for raw_day in raw_days:
        if not isinstance(raw_day, dict):
            continue
        day = _parse_feed_date(raw_day.get("Date"))
        if day is None:
            logger.warning("Skipping feed day with unusable date %r", raw_day.get("Date"))
            continue
        set_menus = raw_day.get("SetMenus") or []
        if not isinstance(set_menus, list) or not set_menus:
            continue
        items = [item for item in (_parse_item(raw) for raw in set_menus) if item]
        days.append(ParsedDay(date=day, items=items))
    return days


def adapt_feed(
    payload: Any,
    restaurant: str,
    config: IngestionConfig = DEFAULT_INGESTION_CONFIG,
    fetched_at: datetime | None = None,
    today: date | None = None,
) -> FeedMenu:
    """
    Reshape a menu feed response into canonical day snapshots.

    With ``config.today_only`` only the day matching ``today`` is kept.
    """
    fetched_at = fetched_at or datetime.now(timezone.utc)
    days = parse_feed_days(payload)
    if config.today_only:
        today = today or date.today()
        days = [d for d in days if d.date == today]

    name = payload.get("RestaurantName")
    return FeedMenu(
        restaurant_name=clean_restaurant_name(
            name if isinstance(name, str) else None, config.name_prefix
        ),
        days=[
            build_snapshot(restaurant, day, fetched_at, config.primary_meal_marker)
            for day in days
        ],
    )

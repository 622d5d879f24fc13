from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from ..menus.models import DaySnapshot, MenuEntry, weekday_name
from ..menus.pricing import normalize_price

logger = logging.getLogger(__name__)


@dataclass
class ParsedItem:
    """One set menu as read from an upstream source, before normalization."""

    name: str
    price: str = ""
    components: list[str] = field(default_factory=list)
    sort_order: int | None = None


@dataclass
class ParsedDay:
    date: date
    items: list[ParsedItem] = field(default_factory=list)


def is_primary_meal(item: ParsedItem, marker: str) -> bool:
    return bool(marker) and marker.lower() in item.name.lower()


def order_set_menus(items: list[ParsedItem], marker: str) -> list[ParsedItem]:
    """
    Put primary-meal items first, keep the upstream sort order otherwise,
    and renumber sort positions from 1. Returns renumbered copies.
    """
    positioned = [
        (item.sort_order if item.sort_order is not None else index + 1, index, item)
        for index, item in enumerate(items)
    ]
    positioned.sort(key=lambda p: (not is_primary_meal(p[2], marker), p[0], p[1]))

    return [
        replace(item, sort_order=position)
        for position, (_, _, item) in enumerate(positioned, start=1)
    ]


def build_snapshot(
    restaurant: str,
    day: ParsedDay,
    fetched_at: datetime,
    primary_meal_marker: str,
) -> DaySnapshot:
    """Drop blank items, order, price-normalize and wrap one parsed day."""
    kept: list[ParsedItem] = []
    for item in day.items:
        name = (item.name or "").strip()
        if not name:
            logger.debug("Dropping unnamed item for %s on %s", restaurant, day.date)
            continue
        kept.append(replace(item, name=name))

    entries = [
        MenuEntry(
            restaurant=restaurant,
            date=day.date,
            weekday=weekday_name(day.date),
            dish_name=item.name,
            student_price=normalize_price(item.price),
            components=[c.strip() for c in item.components if c and c.strip()],
            sort_order=item.sort_order,
        )
        for item in order_set_menus(kept, primary_meal_marker)
    ]
    return DaySnapshot(
        restaurant=restaurant,
        date=day.date,
        entries=entries,
        fetched_at=fetched_at,
    )

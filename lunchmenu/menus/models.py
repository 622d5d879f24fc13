from __future__ import annotations

import re
from datetime import date as Date
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

WEEKDAY_NAMES = [
    "Maanantai",
    "Tiistai",
    "Keskiviikko",
    "Torstai",
    "Perjantai",
    "Lauantai",
    "Sunnuntai",
]

_PRICE_FORMAT = re.compile(r"^\d+,\d{2}$")


def weekday_name(day: Date) -> str:
    """Finnish weekday name for a calendar date."""
    return WEEKDAY_NAMES[day.weekday()]


class MenuEntry(BaseModel):
    restaurant: str = Field(..., min_length=1)
    date: Date
    weekday: str | None = None
    dish_name: str
    student_price: str | None = None
    components: list[str] = Field(default_factory=list)
    sort_order: int = Field(default=1, ge=1)

    @field_validator("dish_name")
    @classmethod
    def _dish_name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("dish_name must not be blank")
        return value

    @field_validator("student_price")
    @classmethod
    def _canonical_price(cls, value: str | None) -> str | None:
        if value is not None and not _PRICE_FORMAT.match(value):
            raise ValueError(f"student_price {value!r} is not in D,DD form")
        return value

    def dedup_key(self) -> tuple[str, Date, str, tuple[str, ...]]:
        return (self.restaurant, self.date, self.dish_name, tuple(self.components))


class DaySnapshot(BaseModel):
    restaurant: str
    date: Date
    entries: list[MenuEntry] = Field(default_factory=list)
    fetched_at: datetime


class DaySnapshotView(DaySnapshot):
    stale: bool


class RefreshStatus(str, Enum):
    pending = "pending"
    fetching = "fetching"
    normalizing = "normalizing"
    persisted = "persisted"
    failed = "failed"


class RefreshResult(BaseModel):
    restaurant: str
    status: RefreshStatus
    restaurant_name: str | None = None
    days: int = 0
    entries: int = 0
    inserted: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == RefreshStatus.persisted


class RestaurantCount(BaseModel):
    restaurant: str
    count: int


class StatsResponse(BaseModel):
    total: int
    by_restaurant: list[RestaurantCount]


class RestaurantOut(BaseModel):
    id: str
    kind: str
    url: str
    language: str


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

"""
Configuration for the menu ingestion pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from ..env import getenv

COMPASS_FEED_URL = "https://www.compass-group.fi/menuapi/feed/json?costNumber={cost_number}&language={language}"


class SourceKind(str, Enum):
    feed = "feed"
    html = "html"


@dataclass(frozen=True)
class RestaurantSource:
    kind: SourceKind
    url: str
    language: str = "fi"


def compass_feed(cost_number: str, language: str = "fi") -> RestaurantSource:
    return RestaurantSource(
        kind=SourceKind.feed,
        url=COMPASS_FEED_URL.format(cost_number=cost_number, language=language),
        language=language,
    )


DEFAULT_SOURCES: dict[str, RestaurantSource] = {
    "tietoteknia": compass_feed("0439"),
    "snelmannia": compass_feed("0437"),
    "canthia": compass_feed("0436"),
    "antell_round": RestaurantSource(
        kind=SourceKind.html,
        url="https://www.antell.fi/round/",
        language="fi",
    ),
}


@dataclass(frozen=True)
class IngestionConfig:
    """
    Configuration for refresh cycles.

    ``sources`` maps restaurant id -> upstream source and is the only list
    of restaurants the orchestrator knows about.
    """

    sources: Mapping[str, RestaurantSource] = field(default_factory=lambda: dict(DEFAULT_SOURCES))
    fetch_timeout: float = field(default_factory=lambda: float(getenv("LUNCHMENU_FETCH_TIMEOUT", "15")))
    primary_meal_marker: str = "lounas"
    name_prefix: str = "Ravintola "
    max_categories_per_day: int = 20
    today_only: bool = False


DEFAULT_INGESTION_CONFIG = IngestionConfig()

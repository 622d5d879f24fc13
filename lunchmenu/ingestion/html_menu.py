"""
Scrape lunch menus out of a restaurant's HTML page.

The language section of the page is flattened into a token stream
(date headers, category markers, description lines) in document order and
then scanned by a small state machine. Two layouts are understood:

* single-day: categories with their descriptions directly in the section;
  a category takes only the first description line after it.
* multi-day: date headers such as ``"Maanantai 15.9."`` each followed by a
  list of categories; a category takes every description line up to the
  next category or header.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Union

from bs4 import BeautifulSoup, Tag

from ..menus.models import DaySnapshot
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig
from .errors import UpstreamShapeMismatch
from .normalize import ParsedDay, ParsedItem, build_snapshot

logger = logging.getLogger(__name__)

CATEGORY_CLASS = "menu-item-category"
MARKER_CHARS = "*•·"
HEADER_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "div", "span"]

DATE_HEADER_RE = re.compile(r"^[^\W\d_]+\s+(\d{1,2})\.(\d{1,2})\.?$")
_ALLERGENS_RE = re.compile(r"\([^)]*\)")
_MARKERS_RE = re.compile(f"[{re.escape(MARKER_CHARS)}]")
_WHITESPACE_RE = re.compile(r"\s+")


# ── Tokens ───────────────────────────────────────────────────────────────


@dataclass
class DateHeader:
    date: date | None


@dataclass
class CategoryMarker:
    name: str
    price: str = ""


@dataclass
class DescriptionLine:
    text: str


Token = Union[DateHeader, CategoryMarker, DescriptionLine]


def resolve_year(day: int, month: int, today: date) -> date | None:
    """
    Date for a day/month header relative to ``today``.

    A January header seen in December belongs to next year, a December
    header seen in January to last year.
    """
    year = today.year
    if today.month == 12 and month == 1:
        year += 1
    elif today.month == 1 and month == 12:
        year -= 1
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_header(text: str, today: date) -> date | None:
    match = DATE_HEADER_RE.match(text.strip())
    if not match:
        return None
    return resolve_year(int(match.group(1)), int(match.group(2)), today)


def clean_description(text: str) -> str:
    text = _ALLERGENS_RE.sub("", text)
    text = _MARKERS_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _category_marker(li: Tag) -> CategoryMarker:
    price_el = li.select_one(".price")
    price = price_el.get_text(" ", strip=True) if price_el else ""
    name_el = li.find(["strong", "b", "em"])
    if name_el:
        name = name_el.get_text(" ", strip=True)
    else:
        name = li.get_text(" ", strip=True)
        if price:
            name = name.replace(price, "")
    return CategoryMarker(name=_WHITESPACE_RE.sub(" ", name).strip(), price=price)


def tokenize_section(section: Tag, today: date) -> list[Token]:
    """Flatten a language section into tokens, in document order."""
    tokens: list[Token] = []
    claimed: set[int] = set()
    for el in section.find_all(True):
        if any(id(parent) in claimed for parent in el.parents):
            continue
        if el.name == "li":
            claimed.add(id(el))
            if CATEGORY_CLASS in (el.get("class") or []):
                tokens.append(_category_marker(el))
            else:
                text = el.get_text(" ", strip=True)
                if text:
                    tokens.append(DescriptionLine(text=text))
        elif el.name in HEADER_TAGS:
            text = el.get_text(" ", strip=True)
            if DATE_HEADER_RE.match(text):
                claimed.add(id(el))
                tokens.append(DateHeader(date=parse_date_header(text, today)))
    return tokens


# ── Scanner ──────────────────────────────────────────────────────────────


class ScanState(Enum):
    BETWEEN_DAYS = "between_days"
    IN_DAY = "in_day"
    IN_CATEGORY = "in_category"


@dataclass
class _Scanner:
    multi_day: bool
    max_categories: int
    days: list[ParsedDay] = field(default_factory=list)
    state: ScanState = ScanState.BETWEEN_DAYS
    day: ParsedDay | None = None
    category: CategoryMarker | None = None
    lines: list[str] = field(default_factory=list)

    def open_day(self, day: date) -> None:
        self.close_category()
        existing = next((d for d in self.days if d.date == day), None)
        if existing is None:
            existing = ParsedDay(date=day)
            self.days.append(existing)
        self.day = existing
        self.state = ScanState.IN_DAY

    def skip_day(self) -> None:
        self.close_category()
        self.day = None
        self.state = ScanState.BETWEEN_DAYS

    def open_category(self, marker: CategoryMarker) -> None:
        self.close_category()
        if self.state == ScanState.BETWEEN_DAYS:
            logger.debug("Ignoring category %r outside any day", marker.name)
            return
        self.category = marker
        self.lines = []
        self.state = ScanState.IN_CATEGORY

    def add_line(self, text: str) -> None:
        if self.state != ScanState.IN_CATEGORY:
            return
        if self.multi_day or not self.lines:
            self.lines.append(text)

    def close_category(self) -> None:
        if self.state != ScanState.IN_CATEGORY:
            return
        marker, day = self.category, self.day
        self.category = None
        self.state = ScanState.IN_DAY
        if marker is None or day is None or not marker.name:
            return
        if len(day.items) >= self.max_categories:
            return

        description = " ".join(self.lines).strip()
        if self.multi_day:
            description = description.rstrip(MARKER_CHARS)
        description = clean_description(description)
        day.items.append(
            ParsedItem(
                name=marker.name,
                price=marker.price,
                components=[description] if description else [],
                sort_order=len(day.items) + 1,
            )
        )


def scan_tokens(tokens: list[Token], today: date, max_categories: int) -> list[ParsedDay]:
    multi_day = any(isinstance(t, DateHeader) for t in tokens)
    scanner = _Scanner(multi_day=multi_day, max_categories=max_categories)
    if not multi_day:
        scanner.open_day(today)

    for token in tokens:
        if isinstance(token, DateHeader):
            if token.date is None:
                scanner.skip_day()
            else:
                scanner.open_day(token.date)
        elif isinstance(token, CategoryMarker):
            scanner.open_category(token)
        else:
            scanner.add_line(token.text)
    scanner.close_category()
    return scanner.days


def find_language_section(soup: BeautifulSoup, language: str) -> Tag | None:
    selector = f'.lunch-menu-language[data-language="{language}"]'
    return soup.select_one(f".lunch-menu-days {selector}") or soup.select_one(selector)


def extract_day_menus(
    html: str,
    language: str,
    today: date | None = None,
    max_categories: int = DEFAULT_INGESTION_CONFIG.max_categories_per_day,
) -> list[ParsedDay]:
    """
    Parse a menu page into per-day category lists.

    Raises ``UpstreamShapeMismatch`` when the page has no section for
    ``language``. A section without categories is a day with no menu.
    """
    today = today or date.today()
    soup = BeautifulSoup(html, "html.parser")
    section = find_language_section(soup, language)
    if section is None:
        raise UpstreamShapeMismatch(f"no lunch menu section for language {language!r}")
    return scan_tokens(tokenize_section(section, today), today, max_categories)


def adapt_html(
    html: str,
    restaurant: str,
    language: str,
    config: IngestionConfig = DEFAULT_INGESTION_CONFIG,
    fetched_at: datetime | None = None,
    today: date | None = None,
) -> list[DaySnapshot]:
    fetched_at = fetched_at or datetime.now(timezone.utc)
    today = today or date.today()
    days = extract_day_menus(html, language, today, config.max_categories_per_day)
    if config.today_only:
        days = [d for d in days if d.date == today]
    return [
        build_snapshot(restaurant, day, fetched_at, config.primary_meal_marker)
        for day in days
    ]

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable

from pydantic import ValidationError

from ..cache.store import MenuStore
from ..menus.models import DaySnapshot, RefreshResult, RefreshStatus
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig, RestaurantSource, SourceKind
from .errors import UpstreamShapeMismatch, UpstreamUnavailable
from .feed import adapt_feed
from .fetch import fetch_source
from .html_menu import adapt_html

logger = logging.getLogger(__name__)

Fetcher = Callable[[RestaurantSource, float], Any]


class RefreshOrchestrator:
    """
    Runs fetch -> normalize -> persist for each configured restaurant.

    A failure in one restaurant's refresh is reported in its result and never
    affects the others; the store keeps serving what it had.
    """

    def __init__(
        self,
        store: MenuStore,
        config: IngestionConfig = DEFAULT_INGESTION_CONFIG,
        fetcher: Fetcher = fetch_source,
    ) -> None:
        self.store = store
        self.config = config
        self.fetcher = fetcher

    async def refresh_all(self) -> list[RefreshResult]:
        return list(
            await asyncio.gather(*(self.refresh_one(r) for r in self.config.sources))
        )

    async def refresh_one(self, restaurant: str) -> RefreshResult:
        source = self.config.sources[restaurant]
        result = RefreshResult(restaurant=restaurant, status=RefreshStatus.pending)

        try:
            self._transition(result, RefreshStatus.fetching)
            raw = await self._fetch(source)

            self._transition(result, RefreshStatus.normalizing)
            snapshots = self._normalize(restaurant, source, raw, result)

            inserted = await asyncio.to_thread(self.store.put_snapshots, snapshots)
        except Exception as exc:
            # Any error, expected or not, fails this restaurant only.
            return self._fail(result, exc)

        result.days = len(snapshots)
        result.entries = sum(len(s.entries) for s in snapshots)
        result.inserted = inserted
        self._transition(result, RefreshStatus.persisted)
        logger.info(
            "Refreshed %s: %d days, %d entries, %d new",
            restaurant, result.days, result.entries, result.inserted,
        )
        return result

    def _fail(self, result: RefreshResult, exc: Exception) -> RefreshResult:
        result.error = f"{type(exc).__name__}: {exc}"
        self._transition(result, RefreshStatus.failed)
        logger.warning("Refresh of %s failed: %s", result.restaurant, result.error, exc_info=True)
        return result

    @staticmethod
    def _transition(result: RefreshResult, status: RefreshStatus) -> None:
        logger.debug("%s: %s -> %s", result.restaurant, result.status.value, status.value)
        result.status = status

    async def _fetch(self, source: RestaurantSource) -> Any:
        timeout = self.config.fetch_timeout
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.fetcher, source, timeout), timeout=timeout
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamUnavailable(f"no response from {source.url} within {timeout}s") from exc

    def _normalize(
        self,
        restaurant: str,
        source: RestaurantSource,
        raw: Any,
        result: RefreshResult,
    ) -> list[DaySnapshot]:
        fetched_at = datetime.now(timezone.utc)
        today = date.today()
        try:
            if source.kind == SourceKind.feed:
                menu = adapt_feed(raw, restaurant, self.config, fetched_at, today)
                result.restaurant_name = menu.restaurant_name
                return menu.days
            return adapt_html(raw, restaurant, source.language, self.config, fetched_at, today)
        except ValidationError as exc:
            raise UpstreamShapeMismatch(f"menu data failed validation: {exc}") from exc

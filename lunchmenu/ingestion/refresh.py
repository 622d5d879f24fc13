"""
Refresh every configured restaurant once.

Usage:
    python -m lunchmenu.ingestion.refresh
"""
from __future__ import annotations

import asyncio
import logging

from ..cache.store import MenuStore, get_store
from ..menus.models import RefreshResult
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig
from .orchestrator import RefreshOrchestrator


def run_refresh(
    config: IngestionConfig = DEFAULT_INGESTION_CONFIG,
    store: MenuStore | None = None,
) -> list[RefreshResult]:
    orchestrator = RefreshOrchestrator(store or get_store(), config)
    return asyncio.run(orchestrator.refresh_all())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    results = run_refresh()
    for r in results:
        if r.ok:
            print(f"{r.restaurant}: {r.entries} entries over {r.days} days ({r.inserted} new)")
        else:
            print(f"{r.restaurant}: FAILED ({r.error})")

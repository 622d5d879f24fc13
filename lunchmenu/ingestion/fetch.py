from __future__ import annotations

import json
from typing import Any

import requests

from .config import RestaurantSource, SourceKind
from .errors import UpstreamShapeMismatch, UpstreamUnavailable

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15"
    )
}


def fetch_text(url: str, timeout: float) -> str:
    """Retrieve a page body, raising ``UpstreamUnavailable`` on any HTTP failure."""
    try:
        response = requests.get(url, headers=HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise UpstreamUnavailable(f"GET {url} failed: {exc}") from exc
    return response.text


def fetch_json(url: str, timeout: float) -> Any:
    body = fetch_text(url, timeout)
    try:
        return json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise UpstreamShapeMismatch(f"{url} did not return JSON: {exc}") from exc


def fetch_source(source: RestaurantSource, timeout: float) -> Any:
    """Feed sources yield decoded JSON, HTML sources the raw document."""
    if source.kind == SourceKind.feed:
        return fetch_json(source.url, timeout)
    return fetch_text(source.url, timeout)

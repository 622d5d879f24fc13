"""
Menu ingestion package.

Responsibilities:
- Fetch raw menus from the configured upstream sources (JSON feed, HTML page).
- Reshape each source into canonical per-day snapshots.
- Drive per-restaurant refresh cycles into the menu store.
"""

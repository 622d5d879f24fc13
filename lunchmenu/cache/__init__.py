"""
Menu persistence.

Responsibilities:
- Store canonical menu entries with insert-or-ignore deduplication.
- Track the last successful refresh per restaurant and day for staleness.
- Serve day snapshots through a short-lived read-through cache.
"""

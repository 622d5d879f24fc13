from __future__ import annotations


class MenuSourceError(Exception):
    """Base class for failures attributable to one upstream source."""


class UpstreamUnavailable(MenuSourceError):
    """Network error, error status, or timeout while fetching."""


class UpstreamShapeMismatch(MenuSourceError):
    """The upstream answered but not in the expected shape."""

"""
Environment settings.

Loads the project ``.env`` once, before any module reads its settings;
every ``LUNCHMENU_*`` lookup goes through ``getenv`` here.
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

ENV_FILE = Path(__file__).resolve().parent.parent / ".env"


def load_env(path: Path = ENV_FILE) -> bool:
    """Load ``path`` into ``os.environ`` without overriding variables already set."""
    return load_dotenv(path)


def getenv(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


load_env()

"""
Operator accounts for the refresh hook and cache stats.

There are no built-in credentials: an account exists only when its password
is configured through ``LUNCHMENU_ADMIN_PASSWORD`` / ``LUNCHMENU_VIEWER_PASSWORD``
(environment or ``.env``) or when it is added with ``add_user``.
"""

from __future__ import annotations

import logging
from typing import Any

import bcrypt

from ..env import getenv

logger = logging.getLogger(__name__)

ROLES = ("viewer", "admin")

_users: dict[str, dict[str, Any]] = {}


def _hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def _verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def add_user(username: str, password: str, role: str = "viewer") -> None:
    if role not in ROLES:
        raise ValueError(f"unknown role {role!r}")
    if not password:
        raise ValueError("password must not be empty")
    _users[username] = {"password_hash": _hash_password(password), "role": role}


def seed_users() -> list[str]:
    """Create the accounts whose passwords are configured. Returns their usernames."""
    seeded = []
    for role in ROLES:
        prefix = f"LUNCHMENU_{role.upper()}"
        password = getenv(f"{prefix}_PASSWORD")
        if not password:
            continue
        username = getenv(f"{prefix}_USER", role)
        add_user(username, password, role=role)
        seeded.append(username)
    if not any(record["role"] == "admin" for record in _users.values()):
        logger.info("No admin account configured; refresh and cache stats endpoints are locked")
    return seeded


def authenticate(username: str, password: str) -> dict[str, Any] | None:
    """Verify credentials. Returns ``{username, role}`` or ``None``."""
    record = _users.get(username)
    if record and _verify_password(password, record["password_hash"]):
        return {"username": username, "role": record["role"]}
    return None


seed_users()

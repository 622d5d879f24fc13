from __future__ import annotations

import secrets
from datetime import date

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from starlette.middleware.sessions import SessionMiddleware

from .auth.dependencies import require_admin, require_user
from .auth.users import authenticate
from .cache.day_cache import get_cache_stats, get_day
from .cache.store import get_store
from .env import getenv
from .ingestion.config import DEFAULT_INGESTION_CONFIG
from .ingestion.orchestrator import RefreshOrchestrator
from .menus.models import (
    DaySnapshotView,
    LoginRequest,
    MenuEntry,
    RefreshResult,
    RestaurantOut,
    StatsResponse,
)

app = FastAPI(title="Lunch Menu API", version="1.0.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=getenv("SESSION_SECRET") or secrets.token_hex(32),
)


def get_orchestrator() -> RefreshOrchestrator:
    return RefreshOrchestrator(get_store(), DEFAULT_INGESTION_CONFIG)


def _require_known(restaurant_id: str) -> None:
    if restaurant_id not in DEFAULT_INGESTION_CONFIG.sources:
        raise HTTPException(status_code=404, detail=f"Unknown restaurant '{restaurant_id}'")


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/restaurants", response_model=list[RestaurantOut])
def restaurants() -> list[RestaurantOut]:
    return [
        RestaurantOut(id=rid, kind=src.kind.value, url=src.url, language=src.language)
        for rid, src in DEFAULT_INGESTION_CONFIG.sources.items()
    ]


@app.get("/restaurants/{restaurant_id}/menu", response_model=DaySnapshotView)
def restaurant_menu(
    restaurant_id: str,
    day: date | None = Query(default=None, alias="date"),
) -> DaySnapshotView:
    _require_known(restaurant_id)
    day = day or date.today()
    snapshot = get_day(get_store(), restaurant_id, day)
    if snapshot is None:
        raise HTTPException(
            status_code=404,
            detail=f"No menu stored for '{restaurant_id}' on {day.isoformat()}",
        )
    return snapshot


@app.get("/dishes", response_model=list[MenuEntry])
def dishes(
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
) -> list[MenuEntry]:
    return get_store().query_all(min_price=min_price, max_price=max_price)


@app.get("/stats", response_model=StatsResponse)
def stats() -> dict:
    return get_store().stats(DEFAULT_INGESTION_CONFIG.sources.keys())


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/login")
def login(body: LoginRequest, request: Request) -> dict:
    user = authenticate(body.username, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.get("/auth/me")
def auth_me(user: dict = Depends(require_user)) -> dict:
    return user


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.post("/refresh", response_model=list[RefreshResult])
async def refresh_all(user: dict = Depends(require_admin)) -> list[RefreshResult]:
    return await get_orchestrator().refresh_all()


@app.post("/refresh/{restaurant_id}", response_model=RefreshResult)
async def refresh_one(restaurant_id: str, user: dict = Depends(require_admin)) -> RefreshResult:
    _require_known(restaurant_id)
    return await get_orchestrator().refresh_one(restaurant_id)


@app.get("/cache/stats")
def cache_stats(user: dict = Depends(require_admin)) -> dict:
    return get_cache_stats()

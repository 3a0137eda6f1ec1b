# src/heyzo/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from heyzo.api.routes_public_parts.admin import router as admin_router
from heyzo.api.routes_public_parts.claims import router as claims_router
from heyzo.api.routes_public_parts.events import router as events_router
from heyzo.api.routes_public_parts.health import router as health_router
from heyzo.api.routes_public_parts.metrics import router as metrics_router
from heyzo.api.routes_public_parts.pools import router as pools_router

public_router = APIRouter()

# Versioned API surface
public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(pools_router, prefix="/v1", tags=["pools"])
public_router.include_router(claims_router, prefix="/v1", tags=["claims"])
public_router.include_router(admin_router, prefix="/v1", tags=["admin"])
public_router.include_router(events_router, prefix="/v1", tags=["events"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])

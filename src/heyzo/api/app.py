from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from heyzo.api.errors import install_error_handlers
from heyzo.api.routes_public import public_router
from heyzo.api.security import CALLER_HEADER, RequestSizeLimitMiddleware
from heyzo.api.structured_logging import RequestLogMiddleware, configure_structured_logging
from heyzo.runtime.engine_boot import build_engine as _build_engine


def build_engine():
    """Build a HeyZoEngine for API runtime.

    This wrapper exists so tests can monkeypatch `heyzo.api.app.build_engine`
    without reaching into runtime modules.
    """
    return _build_engine()


def _parse_cors_origins(mode: str) -> List[str]:
    """Parse CORS origins with production-safe defaults.

    Policy:
      - If HEYZO_CORS_ORIGINS is unset/empty -> CORS disabled
      - Wildcard "*" is rejected in prod mode
      - In non-prod modes, "*" is allowed for convenience
    """
    raw = os.environ.get("HEYZO_CORS_ORIGINS", "").strip()

    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]

    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in HEYZO_CORS_ORIGINS."
            )
        return ["*"]

    return origins


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load config and attach app.state.engine via build_engine()
      - False: keep lightweight; tests attach their own engine
    """
    configure_structured_logging()
    engine = build_engine() if boot_runtime else None

    # A booted engine carries the loaded config; without one fall back to env.
    if engine is not None:
        mode = str(engine.cfg.mode).strip().lower()
        configure_structured_logging(engine.cfg.log_level)
    else:
        mode = os.environ.get("HEYZO_MODE", "prod").strip().lower()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="HeyZo Distributor API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="HeyZo Distributor API")

    app.state.engine = engine

    # --- Middleware ---
    app.add_middleware(RequestSizeLimitMiddleware)

    cors_origins = _parse_cors_origins(mode)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=cors_origins != ["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", CALLER_HEADER],
        )

    # Outermost, so rejected requests are logged too.
    app.add_middleware(RequestLogMiddleware)

    install_error_handlers(app)

    # --- Routers ---
    app.include_router(public_router)

    return app

from __future__ import annotations

import os

from fastapi import Header, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from heyzo.api.errors import ApiError

CALLER_HEADER = "X-HeyZo-Caller"


def _env_int(name: str, default: int) -> int:
    try:
        v = str(os.environ.get(name, "") or "").strip()
        return int(v) if v else int(default)
    except Exception:
        return int(default)


def require_caller(x_heyzo_caller: str | None = Header(default=None)) -> str:
    """FastAPI dependency: the authenticated caller of a mutating route.

    Authentication itself happens upstream (wallet gateway); this service
    trusts the header it forwards.
    """
    caller = str(x_heyzo_caller or "").strip()
    if not caller:
        raise ApiError.forbidden("missing_caller", f"{CALLER_HEADER} header is required", {})
    return caller


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies above HEYZO_MAX_REQUEST_BYTES (default 1 MB) with 413."""

    def __init__(self, app, *, max_bytes: int | None = None) -> None:
        super().__init__(app)
        self._max_bytes = int(max_bytes) if max_bytes is not None else _env_int("HEYZO_MAX_REQUEST_BYTES", 1_000_000)

    def _too_large(self) -> JSONResponse:
        return JSONResponse(
            status_code=413,
            content={"ok": False, "error": {"code": "request_too_large", "message": "Request body too large"}},
        )

    async def dispatch(self, request: Request, call_next):
        cl = request.headers.get("content-length")
        if cl and cl.strip().isdigit() and int(cl) > self._max_bytes:
            return self._too_large()

        if (request.method or "").upper() in {"POST", "PUT", "PATCH"}:
            body = await request.body()
            if body and len(body) > self._max_bytes:
                return self._too_large()

        return await call_next(request)

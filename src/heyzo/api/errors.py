from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from heyzo.runtime import errors as E
from heyzo.runtime.errors import ApplyError


@dataclass(frozen=True, slots=True)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


_APPLY_STATUS: Dict[str, int] = {
    E.UNAUTHORIZED: 403,
    E.CLAIM_TOO_SOON: 429,
    E.POOL_NOT_CONFIGURED: 409,
    E.POOL_EXHAUSTED: 409,
    E.INSUFFICIENT_POOL: 409,
    E.INSUFFICIENT_RESERVE: 409,
    E.TRANSFER_FAILED: 502,
    E.INVALID_PAYLOAD: 400,
}


def status_for_apply_error(err: ApplyError) -> int:
    return _APPLY_STATUS.get(str(err.code), 500)


def _error_body(code: str, message: str, details: Any) -> Dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message, "details": details if details is not None else {}}}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message, exc.details))

    @app.exception_handler(ApplyError)
    async def _apply_error(request: Request, exc: ApplyError) -> JSONResponse:
        return JSONResponse(
            status_code=status_for_apply_error(exc),
            content=_error_body(str(exc.code), str(exc.reason), exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [{"loc": list(e.get("loc", ())), "msg": str(e.get("msg", ""))} for e in exc.errors()]
        return JSONResponse(
            status_code=400,
            content=_error_body(E.INVALID_PAYLOAD, "request validation failed", {"errors": details}),
        )

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from heyzo.api.routes_public_parts.common import _engine, _int_param, _receipt_json

router = APIRouter()

Json = Dict[str, Any]

_MAX_LIMIT = 500


@router.get("/events")
def events(request: Request, limit: Optional[str] = None) -> Json:
    """Newest-last tail of the committed operation log."""
    eng = _engine(request)
    n = max(0, min(_int_param(limit, 100), _MAX_LIMIT))
    return {"ok": True, "events": [_receipt_json(e) for e in eng.events(n)]}

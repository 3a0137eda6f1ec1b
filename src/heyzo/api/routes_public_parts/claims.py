from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request

from heyzo.api.routes_public_parts.common import _amount_str, _engine, _receipt_json
from heyzo.api.security import require_caller

router = APIRouter()

Json = Dict[str, Any]


@router.get("/users/{user}/claims/{asset}")
def user_claim_info(user: str, asset: str, request: Request, now: Optional[int] = None) -> Json:
    """Claim record plus claim status for (user, asset).

    `now` defaults to the engine clock; passing it lets clients preview a
    future time.
    """
    eng = _engine(request)
    info = eng.get_user_info(user, asset)
    status = eng.claim_status(user, asset, now)
    return {
        "ok": True,
        "user": user,
        "asset": asset,
        "streak": int(info.streak),
        "effective_max_send": _amount_str(info.effective_max_send),
        "last_claim": int(info.last_claim),
        "status": status["status"],
        "next_claim_at": int(status["next_claim_at"]),
    }


@router.post("/claims/{asset}")
def claim(asset: str, request: Request, caller: str = Depends(require_caller)) -> Json:
    eng = _engine(request)
    receipt = eng.claim(eng.context(caller), asset)
    return {"ok": True, "receipt": _receipt_json(receipt)}

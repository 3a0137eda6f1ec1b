from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from heyzo.api.errors import ApiError
from heyzo.ledger.types import Pool

Json = Dict[str, Any]


def _engine(request: Request):
    eng = getattr(request.app.state, "engine", None)
    if eng is None:
        raise ApiError.internal("not_ready", "engine not attached to app.state", {})
    return eng


def _amount_str(v: Any) -> str:
    """Amounts leave the API as decimal strings (256-bit safe)."""
    return str(int(v))


def _pool_json(asset: str, pool: Pool) -> Json:
    return {
        "asset": asset,
        "total": _amount_str(pool.total),
        "max_send": _amount_str(pool.max_send),
        "is_native": bool(pool.is_native),
    }


def _receipt_json(receipt: Json) -> Json:
    """Stringify amount fields of an engine receipt."""
    out: Json = {}
    for k, v in receipt.items():
        if k in {"amount", "total", "max_send", "pool_total", "total_sent", "reserve_after", "effective_max_send"}:
            out[k] = _amount_str(v)
        elif k == "payouts" and isinstance(v, list):
            out[k] = [{"to": p.get("to"), "amount": _amount_str(p.get("amount", 0))} for p in v]
        elif k == "transfers" and isinstance(v, list):
            out[k] = [dict(t, amount=_amount_str(t.get("amount", 0))) for t in v]
        elif k == "previous" and isinstance(v, dict):
            out[k] = {
                "total": _amount_str(v.get("total", 0)),
                "max_send": _amount_str(v.get("max_send", 0)),
                "is_native": bool(v.get("is_native", False)),
            }
        else:
            out[k] = v
    return out


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    try:
        s = str(v).strip()
        if s == "":
            return int(default)
        return int(s)
    except Exception:
        return int(default)

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from heyzo.api.routes_public_parts.common import _amount_str, _engine, _pool_json, _receipt_json
from heyzo.api.schemas import AmountRequest, FundPoolRequest, TopUpRequest
from heyzo.api.security import require_caller
from heyzo.runtime.apply.pools import as_amount

router = APIRouter()

Json = Dict[str, Any]


@router.get("/pools")
def pools_list(request: Request) -> Json:
    eng = _engine(request)
    return {"ok": True, "pools": [_pool_json(asset, pool) for asset, pool in eng.list_pools()]}


@router.get("/pools/{asset}")
def pool_get(asset: str, request: Request) -> Json:
    # Unknown assets read as a zero-valued pool, never 404.
    eng = _engine(request)
    return {"ok": True, "pool": _pool_json(asset, eng.get_pool(asset))}


@router.get("/pools/{asset}/reserve")
def pool_reserve(asset: str, request: Request) -> Json:
    eng = _engine(request)
    return {"ok": True, "asset": asset, "reserve": _amount_str(eng.reserve(asset))}


@router.get("/balances/{asset}")
def contract_balance(asset: str, request: Request) -> Json:
    eng = _engine(request)
    return {"ok": True, "asset": asset, "balance": _amount_str(eng.contract_balance(asset))}


@router.post("/pools/{asset}/fund")
def pool_fund(asset: str, body: FundPoolRequest, request: Request, caller: str = Depends(require_caller)) -> Json:
    eng = _engine(request)
    ctx = eng.context(caller, value=as_amount(body.value, "value"))
    receipt = eng.fund_pool(ctx, asset, body.amount, body.is_native)
    return {"ok": True, "receipt": _receipt_json(receipt)}


@router.post("/pools/{asset}/top-up")
def pool_top_up(asset: str, body: TopUpRequest, request: Request, caller: str = Depends(require_caller)) -> Json:
    eng = _engine(request)
    ctx = eng.context(caller, value=as_amount(body.value, "value"))
    receipt = eng.top_up(ctx, asset, body.amount)
    return {"ok": True, "receipt": _receipt_json(receipt)}


@router.post("/admin/pools/{asset}/increase")
def pool_increase(asset: str, body: AmountRequest, request: Request, caller: str = Depends(require_caller)) -> Json:
    eng = _engine(request)
    receipt = eng.increase_pool(eng.context(caller), asset, body.amount)
    return {"ok": True, "receipt": _receipt_json(receipt)}

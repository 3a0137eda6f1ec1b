from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from heyzo.api.routes_public_parts.common import _engine, _receipt_json
from heyzo.api.schemas import AdminBatchSendRequest, AdminSendRequest, SetPoolRequest, WithdrawRequest
from heyzo.api.security import require_caller

router = APIRouter()

Json = Dict[str, Any]


@router.post("/admin/pools/{asset}")
def set_pool(asset: str, body: SetPoolRequest, request: Request, caller: str = Depends(require_caller)) -> Json:
    eng = _engine(request)
    receipt = eng.set_pool(eng.context(caller), asset, body.total, body.max_send, body.is_native)
    return {"ok": True, "receipt": _receipt_json(receipt)}


@router.post("/admin/send")
def admin_send(body: AdminSendRequest, request: Request, caller: str = Depends(require_caller)) -> Json:
    eng = _engine(request)
    receipt = eng.admin_send(eng.context(caller), body.asset, body.to, body.amount)
    return {"ok": True, "receipt": _receipt_json(receipt)}


@router.post("/admin/batch-send")
def admin_batch_send(body: AdminBatchSendRequest, request: Request, caller: str = Depends(require_caller)) -> Json:
    eng = _engine(request)
    receipt = eng.admin_batch_send(eng.context(caller), body.asset, body.recipients, body.max_send)
    return {"ok": True, "receipt": _receipt_json(receipt)}


@router.post("/admin/withdraw")
def withdraw(body: WithdrawRequest, request: Request, caller: str = Depends(require_caller)) -> Json:
    eng = _engine(request)
    receipt = eng.withdraw(eng.context(caller), body.asset, body.amount)
    return {"ok": True, "receipt": _receipt_json(receipt)}

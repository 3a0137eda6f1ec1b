# src/heyzo/runtime/apply/pools.py
from __future__ import annotations

"""
Pool ledger apply semantics.

This module implements deterministic state transitions for:
- destructive pool configuration (POOL_SET)
- additive pool growth from a fresh deposit (POOL_FUND)
- reserve deposits that leave pools untouched (TOP_UP)
- reserve -> pool reclassification (POOL_INCREASE)

Pool records live under state["pools"][asset]. The general reserve is never
stored: it is balance_of(asset) minus the pool allocations for that asset.
"""

from typing import Any, Dict, List, Optional

from heyzo.ledger.constants import NATIVE_ASSET
from heyzo.ledger.types import Pool, Transfer
from heyzo.runtime.apply.host import ApplyHost, ApplyResult
from heyzo.runtime.call_context import OpEnvelope
from heyzo.runtime.errors import (
    INSUFFICIENT_RESERVE,
    INVALID_PAYLOAD,
    UNAUTHORIZED,
    ApplyError,
)

Json = Dict[str, Any]

POOL_OP_TYPES = {"POOL_SET", "POOL_FUND", "TOP_UP", "POOL_INCREASE"}


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_str(x: Any) -> str:
    return str(x).strip() if isinstance(x, (str, int)) and not isinstance(x, bool) else ""


def as_amount(v: Any, field: str, *, allow_zero: bool = True) -> int:
    """Parse a base-unit amount. Accepts ints and ASCII decimal-digit strings only."""
    if isinstance(v, bool) or v is None:
        raise ApplyError(INVALID_PAYLOAD, "amount_not_integer", {"field": field, "value": v})
    if isinstance(v, int):
        amt = int(v)
    elif isinstance(v, str) and v.strip().isascii() and v.strip().isdigit():
        amt = int(v.strip())
    else:
        raise ApplyError(INVALID_PAYLOAD, "amount_not_integer", {"field": field, "value": v})
    if amt < 0:
        raise ApplyError(INVALID_PAYLOAD, "amount_negative", {"field": field, "value": amt})
    if amt == 0 and not allow_zero:
        raise ApplyError(INVALID_PAYLOAD, "amount_zero", {"field": field})
    return amt


def require_asset(payload: Json) -> str:
    asset = _as_str(payload.get("asset"))
    if not asset:
        raise ApplyError(INVALID_PAYLOAD, "missing_asset", {})
    return asset


def require_admin(state: Json, env: OpEnvelope) -> None:
    admin = str(_as_dict(state.get("params")).get("admin") or "").strip()
    caller = str(env.ctx.caller or "").strip()
    if not admin or caller != admin:
        raise ApplyError(UNAUTHORIZED, "admin_only", {"op": env.op, "caller": caller})


def require_native_flag(asset: str, is_native: bool) -> None:
    if bool(is_native) != (asset == NATIVE_ASSET):
        raise ApplyError(INVALID_PAYLOAD, "native_flag_mismatch", {"asset": asset, "is_native": bool(is_native)})


def ensure_pools(state: Json) -> Json:
    pools = state.get("pools")
    if not isinstance(pools, dict):
        pools = {}
        state["pools"] = pools
    return pools


def read_pool(state: Json, asset: str) -> Pool:
    return Pool.from_json(ensure_pools(state).get(asset))


def write_pool(state: Json, asset: str, pool: Pool) -> None:
    ensure_pools(state)[asset] = pool.to_json()


def allocated(state: Json, asset: str) -> int:
    total = 0
    for key, rec in ensure_pools(state).items():
        if key == asset:
            total += Pool.from_json(rec).total
    return int(total)


def reserve_of(state: Json, asset: str, host: ApplyHost) -> int:
    """Unallocated holdings for `asset`. Never negative on a consistent state."""
    return int(host.balance_of(asset)) - allocated(state, asset)


def _require_attached_value(env: OpEnvelope, asset: str, amount: int) -> None:
    if asset == NATIVE_ASSET and int(env.ctx.value) != int(amount):
        raise ApplyError(
            INVALID_PAYLOAD,
            "native_value_mismatch",
            {"asset": asset, "amount": int(amount), "value": int(env.ctx.value)},
        )


def _apply_pool_set(state: Json, env: OpEnvelope, host: ApplyHost) -> ApplyResult:
    require_admin(state, env)
    payload = _as_dict(env.payload)
    asset = require_asset(payload)
    total = as_amount(payload.get("total"), "total")
    max_send = as_amount(payload.get("max_send"), "max_send")
    is_native = bool(payload.get("is_native", False))
    require_native_flag(asset, is_native)

    prev = read_pool(state, asset)
    others = allocated(state, asset) - prev.total
    balance = int(host.balance_of(asset))
    if others + total > balance:
        raise ApplyError(
            INSUFFICIENT_RESERVE,
            "pool_total_exceeds_available_balance",
            {"asset": asset, "total": total, "allocated_elsewhere": others, "balance": balance},
        )

    write_pool(state, asset, Pool(total=total, max_send=max_send, is_native=is_native))
    return (
        {
            "applied": "POOL_SET",
            "asset": asset,
            "total": total,
            "max_send": max_send,
            "is_native": is_native,
            "previous": prev.to_json(),
        },
        [],
    )


def _apply_pool_fund(state: Json, env: OpEnvelope, host: ApplyHost) -> ApplyResult:
    payload = _as_dict(env.payload)
    asset = require_asset(payload)
    amount = as_amount(payload.get("amount"), "amount", allow_zero=False)
    is_native = bool(payload.get("is_native", False))
    require_native_flag(asset, is_native)
    _require_attached_value(env, asset, amount)

    prev = read_pool(state, asset)
    # A pool that does not exist yet starts disabled (max_send=0) until POOL_SET.
    pool = Pool(total=prev.total + amount, max_send=prev.max_send, is_native=is_native)
    write_pool(state, asset, pool)

    transfers: List[Transfer] = [Transfer("in", asset, env.ctx.caller, amount)]
    return (
        {"applied": "POOL_FUND", "asset": asset, "amount": amount, "from": env.ctx.caller, "total": pool.total},
        transfers,
    )


def _apply_top_up(state: Json, env: OpEnvelope, host: ApplyHost) -> ApplyResult:
    payload = _as_dict(env.payload)
    asset = require_asset(payload)
    amount = as_amount(payload.get("amount"), "amount", allow_zero=False)
    _require_attached_value(env, asset, amount)

    return (
        {"applied": "TOP_UP", "asset": asset, "amount": amount, "from": env.ctx.caller},
        [Transfer("in", asset, env.ctx.caller, amount)],
    )


def _apply_pool_increase(state: Json, env: OpEnvelope, host: ApplyHost) -> ApplyResult:
    require_admin(state, env)
    payload = _as_dict(env.payload)
    asset = require_asset(payload)
    amount = as_amount(payload.get("amount"), "amount", allow_zero=False)

    reserve = reserve_of(state, asset, host)
    if amount > reserve:
        raise ApplyError(
            INSUFFICIENT_RESERVE,
            "reserve_too_small",
            {"asset": asset, "amount": amount, "reserve": max(reserve, 0)},
        )

    prev = read_pool(state, asset)
    is_native = prev.is_native if asset in ensure_pools(state) else asset == NATIVE_ASSET
    pool = Pool(total=prev.total + amount, max_send=prev.max_send, is_native=is_native)
    write_pool(state, asset, pool)
    return ({"applied": "POOL_INCREASE", "asset": asset, "amount": amount, "total": pool.total}, [])


def apply_pools(state: Json, env: OpEnvelope, host: ApplyHost) -> Optional[ApplyResult]:
    t = str(env.op or "").strip().upper()
    if t not in POOL_OP_TYPES:
        return None

    if t == "POOL_SET":
        return _apply_pool_set(state, env, host)
    if t == "POOL_FUND":
        return _apply_pool_fund(state, env, host)
    if t == "TOP_UP":
        return _apply_top_up(state, env, host)
    if t == "POOL_INCREASE":
        return _apply_pool_increase(state, env, host)

    return None


__all__ = [
    "POOL_OP_TYPES",
    "apply_pools",
    "as_amount",
    "allocated",
    "read_pool",
    "reserve_of",
    "require_admin",
    "require_asset",
    "write_pool",
]

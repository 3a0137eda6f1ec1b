# src/heyzo/runtime/apply/admin.py
from __future__ import annotations

"""
Privileged payout apply semantics.

- ADMIN_SEND: fixed payout from a pool, bypassing cooldown/streak
- ADMIN_BATCH_SEND: independent random payouts to many recipients; every draw
  is staged against a running pool balance and the whole batch fails before
  any payout if one recipient cannot be covered
- WITHDRAW: pays the admin out of the general reserve (never out of a pool)
"""

from typing import Any, Dict, List, Optional

from heyzo.ledger.constants import DEFAULT_MIN_CLAIM
from heyzo.ledger.types import Pool, Transfer
from heyzo.runtime.apply.host import ApplyHost, ApplyResult
from heyzo.runtime.apply.pools import (
    as_amount,
    read_pool,
    require_admin,
    require_asset,
    reserve_of,
    write_pool,
)
from heyzo.runtime.call_context import OpEnvelope
from heyzo.runtime.errors import (
    INSUFFICIENT_POOL,
    INSUFFICIENT_RESERVE,
    INVALID_PAYLOAD,
    INVARIANT_VIOLATION,
    ApplyError,
)
from heyzo.runtime.randomness import draw_material

Json = Dict[str, Any]

ADMIN_OP_TYPES = {"ADMIN_SEND", "ADMIN_BATCH_SEND", "WITHDRAW"}

# Hard cap on recipients per batch.
MAX_BATCH_RECIPIENTS = 500


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return default


def _require_account(v: Any, field: str) -> str:
    s = str(v).strip() if isinstance(v, str) else ""
    if not s:
        raise ApplyError(INVALID_PAYLOAD, "missing_account", {"field": field})
    return s


def _apply_admin_send(state: Json, env: OpEnvelope, host: ApplyHost) -> ApplyResult:
    require_admin(state, env)
    payload = _as_dict(env.payload)
    asset = require_asset(payload)
    to = _require_account(payload.get("to"), "to")
    amount = as_amount(payload.get("amount"), "amount", allow_zero=False)

    pool = read_pool(state, asset)
    if amount > pool.total:
        raise ApplyError(INSUFFICIENT_POOL, "amount_exceeds_pool_total", {"asset": asset, "amount": amount, "pool_total": pool.total})

    write_pool(state, asset, Pool(total=pool.total - amount, max_send=pool.max_send, is_native=pool.is_native))
    return (
        {"applied": "ADMIN_SEND", "asset": asset, "to": to, "amount": amount, "pool_total": pool.total - amount},
        [Transfer("out", asset, to, amount)],
    )


def _apply_admin_batch_send(state: Json, env: OpEnvelope, host: ApplyHost) -> ApplyResult:
    require_admin(state, env)
    payload = _as_dict(env.payload)
    asset = require_asset(payload)
    max_send = as_amount(payload.get("max_send"), "max_send", allow_zero=False)

    raw = payload.get("recipients")
    if not isinstance(raw, list) or not raw:
        raise ApplyError(INVALID_PAYLOAD, "recipients_must_be_nonempty_list", {"asset": asset})
    if len(raw) > MAX_BATCH_RECIPIENTS:
        raise ApplyError(INVALID_PAYLOAD, "too_many_recipients", {"count": len(raw), "max": MAX_BATCH_RECIPIENTS})
    recipients = [_require_account(r, f"recipients[{i}]") for i, r in enumerate(raw)]

    min_claim = _as_int(_as_dict(state.get("params")).get("min_claim"), DEFAULT_MIN_CLAIM)
    if max_send < min_claim:
        raise ApplyError(INVALID_PAYLOAD, "max_send_below_min_claim", {"max_send": max_send, "min_claim": min_claim})

    pool = read_pool(state, asset)
    seq = _as_int(_as_dict(state.get("stats")).get("seq"), 0)
    remaining = pool.total
    payouts: List[Json] = []
    transfers: List[Transfer] = []

    # Stage every draw first; nothing is paid unless all recipients fit.
    for i, to in enumerate(recipients):
        amount = int(
            host.rng.draw(
                min_claim,
                max_send,
                material=draw_material(asset=asset, caller=env.ctx.caller, now=env.ctx.now, seq=seq, index=i),
            )
        )
        if amount < min_claim or amount > max_send:
            raise ApplyError(INVARIANT_VIOLATION, "randomness_out_of_range", {"amount": amount, "low": min_claim, "high": max_send})
        if amount > remaining:
            raise ApplyError(
                INSUFFICIENT_POOL,
                "batch_exceeds_pool_total",
                {"asset": asset, "index": i, "recipient": to, "amount": amount, "remaining": remaining},
            )
        remaining -= amount
        payouts.append({"to": to, "amount": amount})
        transfers.append(Transfer("out", asset, to, amount))

    write_pool(state, asset, Pool(total=remaining, max_send=pool.max_send, is_native=pool.is_native))
    return (
        {
            "applied": "ADMIN_BATCH_SEND",
            "asset": asset,
            "payouts": payouts,
            "total_sent": pool.total - remaining,
            "pool_total": remaining,
        },
        transfers,
    )


def _apply_withdraw(state: Json, env: OpEnvelope, host: ApplyHost) -> ApplyResult:
    require_admin(state, env)
    payload = _as_dict(env.payload)
    asset = require_asset(payload)
    amount = as_amount(payload.get("amount"), "amount", allow_zero=False)

    reserve = reserve_of(state, asset, host)
    if amount > reserve:
        raise ApplyError(
            INSUFFICIENT_RESERVE,
            "amount_exceeds_reserve",
            {"asset": asset, "amount": amount, "reserve": max(reserve, 0)},
        )

    return (
        {"applied": "WITHDRAW", "asset": asset, "to": env.ctx.caller, "amount": amount, "reserve_after": reserve - amount},
        [Transfer("out", asset, env.ctx.caller, amount)],
    )


def apply_admin(state: Json, env: OpEnvelope, host: ApplyHost) -> Optional[ApplyResult]:
    t = str(env.op or "").strip().upper()
    if t not in ADMIN_OP_TYPES:
        return None

    if t == "ADMIN_SEND":
        return _apply_admin_send(state, env, host)
    if t == "ADMIN_BATCH_SEND":
        return _apply_admin_batch_send(state, env, host)
    if t == "WITHDRAW":
        return _apply_withdraw(state, env, host)

    return None


__all__ = ["ADMIN_OP_TYPES", "MAX_BATCH_RECIPIENTS", "apply_admin"]

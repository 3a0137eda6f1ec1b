# src/heyzo/runtime/apply/claims.py
from __future__ import annotations

"""
Claim engine apply semantics (CLAIM).

Order of operations is fixed:
  1. pool must be configured (max_send > 0)
  2. cooldown since the caller's last claim must have elapsed
  3. streak continues if the previous claim is within one day window, else resets to 1
  4. effective cap = max_send boosted by +10% per 10 streak days, capped by pool.total
  5. amount drawn uniformly in [min_claim, effective cap]
  6. pool debit + user state update
  7. payout transfer staged last; the engine executes it only after 1-6 applied
"""

from typing import Any, Dict, Optional

from heyzo.ledger.constants import (
    BPS_DENOM,
    DEFAULT_COOLDOWN_S,
    DEFAULT_DAY_LENGTH_S,
    DEFAULT_MIN_CLAIM,
    STREAK_BONUS_BPS,
    STREAK_BONUS_EVERY,
)
from heyzo.ledger.types import Pool, Transfer, UserClaimState
from heyzo.runtime.apply.host import ApplyHost, ApplyResult
from heyzo.runtime.apply.pools import read_pool, require_asset, write_pool
from heyzo.runtime.call_context import OpEnvelope
from heyzo.runtime.errors import (
    CLAIM_TOO_SOON,
    CLAIM_TOO_SOON_REASON,
    INVALID_PAYLOAD,
    INVARIANT_VIOLATION,
    POOL_EXHAUSTED,
    POOL_NOT_CONFIGURED,
    ApplyError,
)
from heyzo.runtime.randomness import draw_material

Json = Dict[str, Any]

CLAIM_OP_TYPES = {"CLAIM"}


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return default


def next_streak(prev: UserClaimState, now: int, day_length_s: int) -> int:
    """Streak after a claim at `now`. The current claim always counts as day 1 of a fresh streak."""
    if not prev.has_claimed:
        return 1
    if int(now) - int(prev.last_claim) <= int(day_length_s):
        return int(prev.streak) + 1
    return 1


def bonus_bps(streak: int) -> int:
    """Multiplier in basis points: 10_000 + 1_000 per completed block of 10 streak days."""
    return BPS_DENOM + STREAK_BONUS_BPS * (max(int(streak), 0) // STREAK_BONUS_EVERY)


def effective_cap(pool: Pool, streak: int) -> int:
    boosted = int(pool.max_send) * bonus_bps(streak) // BPS_DENOM
    return min(boosted, int(pool.total))


def _ensure_user(state: Json, user: str) -> Json:
    users = state.get("users")
    if not isinstance(users, dict):
        users = {}
        state["users"] = users
    rec = users.get(user)
    if not isinstance(rec, dict):
        rec = {}
        users[user] = rec
    return rec


def _bump_stats(state: Json, asset: str, amount: int) -> None:
    stats = state.get("stats")
    if not isinstance(stats, dict):
        stats = {}
        state["stats"] = stats
    stats["claims_total"] = _as_int(stats.get("claims_total"), 0) + 1
    by_asset = stats.get("claimed_by_asset")
    if not isinstance(by_asset, dict):
        by_asset = {}
        stats["claimed_by_asset"] = by_asset
    by_asset[asset] = _as_int(by_asset.get(asset), 0) + int(amount)


def _apply_claim(state: Json, env: OpEnvelope, host: ApplyHost) -> ApplyResult:
    payload = _as_dict(env.payload)
    asset = require_asset(payload)
    caller = str(env.ctx.caller or "").strip()
    if not caller:
        raise ApplyError(INVALID_PAYLOAD, "missing_caller", {"op": env.op})
    now = int(env.ctx.now)

    params = _as_dict(state.get("params"))
    cooldown_s = _as_int(params.get("cooldown_s"), DEFAULT_COOLDOWN_S)
    day_length_s = _as_int(params.get("day_length_s"), DEFAULT_DAY_LENGTH_S)
    min_claim = _as_int(params.get("min_claim"), DEFAULT_MIN_CLAIM)

    pool = read_pool(state, asset)
    if not pool.claimable:
        raise ApplyError(POOL_NOT_CONFIGURED, "pool_max_send_zero", {"asset": asset})

    user_rec = _ensure_user(state, caller)
    prev = UserClaimState.from_json(user_rec.get(asset))

    if prev.has_claimed and (now < prev.last_claim + cooldown_s or now < prev.last_claim):
        raise ApplyError(
            CLAIM_TOO_SOON,
            CLAIM_TOO_SOON_REASON,
            {"asset": asset, "last_claim": prev.last_claim, "next_claim_at": prev.last_claim + cooldown_s, "now": now},
        )

    streak = next_streak(prev, now, day_length_s)
    cap = effective_cap(pool, streak)
    if cap < min_claim:
        raise ApplyError(
            POOL_EXHAUSTED,
            "claimable_range_below_min_claim",
            {"asset": asset, "effective_cap": cap, "min_claim": min_claim, "pool_total": pool.total},
        )

    seq = _as_int(_as_dict(state.get("stats")).get("seq"), 0)
    amount = int(host.rng.draw(min_claim, cap, material=draw_material(asset=asset, caller=caller, now=now, seq=seq)))
    if amount < min_claim or amount > cap:
        raise ApplyError(INVARIANT_VIOLATION, "randomness_out_of_range", {"amount": amount, "low": min_claim, "high": cap})

    write_pool(state, asset, Pool(total=pool.total - amount, max_send=pool.max_send, is_native=pool.is_native))
    user_rec[asset] = UserClaimState(streak=streak, effective_max_send=cap, last_claim=now).to_json()
    _bump_stats(state, asset, amount)

    return (
        {
            "applied": "CLAIM",
            "asset": asset,
            "user": caller,
            "amount": amount,
            "streak": streak,
            "effective_max_send": cap,
            "pool_total": pool.total - amount,
        },
        [Transfer("out", asset, caller, amount)],
    )


def apply_claims(state: Json, env: OpEnvelope, host: ApplyHost) -> Optional[ApplyResult]:
    t = str(env.op or "").strip().upper()
    if t not in CLAIM_OP_TYPES:
        return None
    return _apply_claim(state, env, host)


__all__ = ["CLAIM_OP_TYPES", "apply_claims", "bonus_bps", "effective_cap", "next_streak"]

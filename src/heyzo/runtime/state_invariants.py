# src/heyzo/runtime/state_invariants.py
from __future__ import annotations

"""State invariants / normalization helpers.

Distributor state is a nested JSON-like dict mutated deterministically by the
apply/* modules:

    {
      "params": {"admin", "cooldown_s", "day_length_s", "min_claim"},
      "pools":  {asset: {"total", "max_send", "is_native"}},
      "users":  {user: {asset: {"streak", "effective_max_send", "last_claim"}}},
      "events": [receipt, ...],
      "stats":  {"seq", "ops_total", "claims_total", ...},
    }

ensure_state() creates the top-level containers. check_solvency() verifies the
global accounting invariants against the balance accessor and is run on every
working copy before it is committed.
"""

from collections.abc import MutableMapping
from typing import Any, Callable, Dict, Iterable

from heyzo.ledger.types import Pool, UserClaimState
from heyzo.runtime.errors import INVARIANT_VIOLATION, ApplyError

Json = Dict[str, Any]

_CONTAINERS = ("params", "pools", "users", "stats")


def ensure_state(st: Any) -> Json:
    """Ensure `st` is a dict and contains core keys.

    Returns the (possibly mutated) dict.

    Raises:
        TypeError: if st is not a MutableMapping
    """
    if not isinstance(st, MutableMapping):
        raise TypeError(f"state must be MutableMapping, got {type(st)}")

    for key in _CONTAINERS:
        cur = st.get(key)
        if cur is None:
            st[key] = {}
        elif not isinstance(cur, dict):
            # Fail closed: do not attempt to coerce arbitrary types.
            raise TypeError(f"state[{key!r}] must be dict, got {type(cur)}")

    events = st.get("events")
    if events is None:
        st["events"] = []
    elif not isinstance(events, list):
        raise TypeError(f"state['events'] must be list, got {type(events)}")

    return st  # type: ignore[return-value]


def check_solvency(st: Json, balance_of: Callable[[str], int], *, assets: Iterable[str] | None = None) -> None:
    """Raise ApplyError(invariant_violation) if any pool is under-collateralized.

    For every asset: sum(pool.total) <= balance_of(asset), and no negative
    amounts anywhere.
    """
    pools = st.get("pools") if isinstance(st.get("pools"), dict) else {}

    allocated: Dict[str, int] = {}
    for asset, rec in pools.items():
        if not isinstance(rec, dict):
            raise ApplyError(INVARIANT_VIOLATION, "pool_record_malformed", {"asset": asset})
        if int(rec.get("total", 0)) < 0 or int(rec.get("max_send", 0)) < 0:
            raise ApplyError(INVARIANT_VIOLATION, "negative_pool_amount", {"asset": asset, "pool": rec})
        allocated[asset] = allocated.get(asset, 0) + Pool.from_json(rec).total

    check = set(allocated.keys()) if assets is None else set(assets) & set(allocated.keys())
    for asset in sorted(check):
        bal = int(balance_of(asset))
        if allocated[asset] > bal:
            raise ApplyError(
                INVARIANT_VIOLATION,
                "pools_exceed_balance",
                {"asset": asset, "allocated": allocated[asset], "balance": bal},
            )


def check_user_monotonic(before: Json, after: Json) -> None:
    """last_claim per (user, asset) never moves backwards."""
    b_users = before.get("users") if isinstance(before.get("users"), dict) else {}
    a_users = after.get("users") if isinstance(after.get("users"), dict) else {}
    for user, per_asset in a_users.items():
        if not isinstance(per_asset, dict):
            continue
        prev = b_users.get(user) if isinstance(b_users.get(user), dict) else {}
        for asset, rec in per_asset.items():
            old = UserClaimState.from_json(prev.get(asset))
            new = UserClaimState.from_json(rec)
            if new.last_claim < old.last_claim:
                raise ApplyError(
                    INVARIANT_VIOLATION,
                    "last_claim_regressed",
                    {"user": user, "asset": asset, "before": old.last_claim, "after": new.last_claim},
                )


__all__ = ["ensure_state", "check_solvency", "check_user_monotonic"]

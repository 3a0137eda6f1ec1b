# src/heyzo/ledger/types.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


@dataclass(frozen=True, slots=True)
class Pool:
    """Allocation of one asset plus its per-claim ceiling."""

    total: int = 0
    max_send: int = 0
    is_native: bool = False

    @staticmethod
    def from_json(j: Any) -> "Pool":
        if not isinstance(j, dict):
            return Pool()
        return Pool(
            total=max(_as_int(j.get("total"), 0), 0),
            max_send=max(_as_int(j.get("max_send"), 0), 0),
            is_native=bool(j.get("is_native", False)),
        )

    def to_json(self) -> Json:
        return {"total": int(self.total), "max_send": int(self.max_send), "is_native": bool(self.is_native)}

    @property
    def claimable(self) -> bool:
        return int(self.max_send) > 0


@dataclass(frozen=True, slots=True)
class UserClaimState:
    streak: int = 0
    effective_max_send: int = 0
    last_claim: int = 0

    @staticmethod
    def from_json(j: Any) -> "UserClaimState":
        if not isinstance(j, dict):
            return UserClaimState()
        return UserClaimState(
            streak=max(_as_int(j.get("streak"), 0), 0),
            effective_max_send=max(_as_int(j.get("effective_max_send"), 0), 0),
            last_claim=max(_as_int(j.get("last_claim"), 0), 0),
        )

    def to_json(self) -> Json:
        return {
            "streak": int(self.streak),
            "effective_max_send": int(self.effective_max_send),
            "last_claim": int(self.last_claim),
        }

    @property
    def has_claimed(self) -> bool:
        return int(self.last_claim) != 0


@dataclass(frozen=True, slots=True)
class Transfer:
    """A staged value movement, executed after all state changes are applied.

    direction: "out" (engine -> account) | "in" (account -> engine)
    """

    direction: str
    asset: str
    account: str
    amount: int

    def to_json(self) -> Json:
        return {"direction": self.direction, "asset": self.asset, "account": self.account, "amount": int(self.amount)}

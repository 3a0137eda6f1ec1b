# src/heyzo/ledger/state.py
from __future__ import annotations

from dataclasses import dataclass, field
import copy
from typing import Any, Dict, List, Tuple

from heyzo.ledger.constants import (
    DEFAULT_COOLDOWN_S,
    DEFAULT_DAY_LENGTH_S,
    DEFAULT_MIN_CLAIM,
    STATUS_COOLDOWN_ACTIVE,
    STATUS_NEVER_CLAIMED,
    STATUS_READY_TO_CLAIM,
)
from heyzo.ledger.types import Pool, UserClaimState


Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class LedgerView:
    """
    Immutable read-only view of the distributor state.

    Every read operation goes through this view so that reads never observe a
    working copy that is still being applied.
    """

    pools: Dict[str, Any] = field(default_factory=dict)
    users: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_ledger(cls, state: Dict[str, Any]) -> "LedgerView":
        return cls(
            pools=copy.deepcopy(state.get("pools", {})) if isinstance(state.get("pools"), dict) else {},
            users=copy.deepcopy(state.get("users", {})) if isinstance(state.get("users"), dict) else {},
            params=copy.deepcopy(state.get("params", {})) if isinstance(state.get("params"), dict) else {},
        )

    def get_pool(self, asset: str) -> Pool:
        return Pool.from_json(self.pools.get(str(asset)))

    def list_pools(self) -> List[Tuple[str, Pool]]:
        return [(asset, Pool.from_json(rec)) for asset, rec in sorted(self.pools.items())]

    def allocated(self, asset: str) -> int:
        """Sum of pool totals backed by `asset`."""
        a = str(asset)
        total = 0
        for key, rec in self.pools.items():
            if key == a:
                total += Pool.from_json(rec).total
        return int(total)

    def get_user_info(self, user: str, asset: str) -> UserClaimState:
        per_user = self.users.get(str(user))
        if not isinstance(per_user, dict):
            return UserClaimState()
        return UserClaimState.from_json(per_user.get(str(asset)))

    def get_param(self, key: str, default: Any = None) -> Any:
        try:
            return self.params.get(key, default)
        except Exception:
            return default

    @property
    def admin(self) -> str:
        v = self.params.get("admin")
        return str(v).strip() if v is not None else ""

    @property
    def cooldown_s(self) -> int:
        return int(self.get_param("cooldown_s", DEFAULT_COOLDOWN_S))

    @property
    def day_length_s(self) -> int:
        return int(self.get_param("day_length_s", DEFAULT_DAY_LENGTH_S))

    @property
    def min_claim(self) -> int:
        return int(self.get_param("min_claim", DEFAULT_MIN_CLAIM))

    def claim_status(self, user: str, asset: str, now: int) -> Json:
        """
        Per (user, asset) claim state machine:

          never_claimed -> cooldown_active <-> ready_to_claim
        """
        info = self.get_user_info(user, asset)
        if not info.has_claimed:
            return {"status": STATUS_NEVER_CLAIMED, "next_claim_at": 0}
        next_at = int(info.last_claim) + self.cooldown_s
        status = STATUS_READY_TO_CLAIM if int(now) >= next_at else STATUS_COOLDOWN_ACTIVE
        return {"status": status, "next_claim_at": next_at}

"""
HeyZo: Balance Accessor (value movement boundary)

The distributor never moves value itself. It asks a BalanceAccessor to:
  - report the engine's holdings of an asset (balance_of)
  - pay an account (transfer_out)
  - pull a deposit from an account (transfer_in)

The accessor also exposes savepoint()/rollback() so the engine can revert
value movements performed by an operation that ultimately fails. On a real
chain this is the host's transaction revert; the in-memory backend below
snapshots its holdings.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Set, runtime_checkable

Json = Dict[str, Any]


@dataclass
class TransferError(RuntimeError):
    """Raised by a BalanceAccessor when a transfer cannot be executed."""

    reason: str
    details: Optional[Json] = None

    def __str__(self) -> str:
        return f"transfer_error:{self.reason}"


# ---------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------

@runtime_checkable
class BalanceAccessor(Protocol):
    def balance_of(self, asset: str) -> int: ...
    def transfer_out(self, asset: str, to: str, amount: int) -> None: ...
    def transfer_in(self, asset: str, frm: str, amount: int) -> None: ...

    def savepoint(self) -> Any: ...
    def rollback(self, savepoint: Any) -> None: ...


# ---------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------

class InMemoryBalances:
    """
    Holdings ledger kept in process memory.

    - holdings[holder][asset] -> int
    - the engine's own holdings live under `engine_account`
    - recipients registered via reject_recipient() revert every transfer_out
      (models a recipient contract that refuses value)
    """

    def __init__(self, *, engine_account: str = "heyzo", holdings: Optional[Dict[str, Dict[str, int]]] = None) -> None:
        self.engine_account = str(engine_account)
        self._holdings: Dict[str, Dict[str, int]] = {}
        self._rejecting: Set[str] = set()
        self._lock = threading.RLock()
        if holdings:
            self.load(holdings)

    # ---- accessor surface ----

    def balance_of(self, asset: str) -> int:
        return self.holder_balance(self.engine_account, asset)

    def transfer_out(self, asset: str, to: str, amount: int) -> None:
        amt = int(amount)
        recipient = str(to).strip()
        if amt < 0:
            raise TransferError("negative_amount", {"amount": amt})
        if not recipient:
            raise TransferError("missing_recipient", {"asset": asset})
        with self._lock:
            if recipient in self._rejecting:
                raise TransferError("recipient_rejected", {"asset": asset, "to": recipient})
            have = self.holder_balance(self.engine_account, asset)
            if have < amt:
                raise TransferError("insufficient_liquidity", {"asset": asset, "have": have, "need": amt})
            self._move(asset, self.engine_account, recipient, amt)

    def transfer_in(self, asset: str, frm: str, amount: int) -> None:
        amt = int(amount)
        sender = str(frm).strip()
        if amt < 0:
            raise TransferError("negative_amount", {"amount": amt})
        if not sender:
            raise TransferError("missing_sender", {"asset": asset})
        with self._lock:
            have = self.holder_balance(sender, asset)
            if have < amt:
                raise TransferError("insufficient_funds", {"asset": asset, "from": sender, "have": have, "need": amt})
            self._move(asset, sender, self.engine_account, amt)

    def savepoint(self) -> Any:
        with self._lock:
            return copy.deepcopy(self._holdings)

    def rollback(self, savepoint: Any) -> None:
        if not isinstance(savepoint, dict):
            raise TypeError("savepoint must be a holdings dict")
        with self._lock:
            self._holdings = copy.deepcopy(savepoint)

    # ---- helpers (genesis, persistence, tests) ----

    def holder_balance(self, holder: str, asset: str) -> int:
        with self._lock:
            per = self._holdings.get(str(holder))
            if not isinstance(per, dict):
                return 0
            return int(per.get(str(asset), 0))

    def credit(self, holder: str, asset: str, amount: int) -> None:
        """Mint `amount` to `holder` out of thin air (genesis / test seeding)."""
        amt = int(amount)
        if amt < 0:
            raise ValueError("credit amount must be >= 0")
        with self._lock:
            per = self._holdings.setdefault(str(holder), {})
            per[str(asset)] = int(per.get(str(asset), 0)) + amt

    def reject_recipient(self, account: str, rejecting: bool = True) -> None:
        with self._lock:
            if rejecting:
                self._rejecting.add(str(account))
            else:
                self._rejecting.discard(str(account))

    def export(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return copy.deepcopy(self._holdings)

    def load(self, holdings: Dict[str, Dict[str, int]]) -> None:
        if not isinstance(holdings, dict):
            raise ValueError("holdings must be a dict")
        out: Dict[str, Dict[str, int]] = {}
        for holder, per in holdings.items():
            if not isinstance(per, dict):
                continue
            out[str(holder)] = {str(a): int(v) for a, v in per.items() if int(v) >= 0}
        with self._lock:
            self._holdings = out

    def _move(self, asset: str, frm: str, to: str, amount: int) -> None:
        a = str(asset)
        src = self._holdings.setdefault(frm, {})
        dst = self._holdings.setdefault(to, {})
        src[a] = int(src.get(a, 0)) - int(amount)
        dst[a] = int(dst.get(a, 0)) + int(amount)

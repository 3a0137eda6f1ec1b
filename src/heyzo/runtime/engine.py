# src/heyzo/runtime/engine.py
from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from heyzo.ledger.constants import MAX_EVENTS
from heyzo.ledger.state import LedgerView
from heyzo.ledger.types import Pool, Transfer, UserClaimState
from heyzo.runtime.apply.host import ApplyHost
from heyzo.runtime.balances import BalanceAccessor, TransferError
from heyzo.runtime.call_context import CallContext, OpEnvelope
from heyzo.runtime.engine_config import EngineConfig
from heyzo.runtime.errors import TRANSFER_FAILED, ApplyError
from heyzo.runtime.metrics import inc_counter, set_gauge
from heyzo.runtime.op_dispatch import apply_op
from heyzo.runtime.randomness import RandomnessProvider
from heyzo.runtime.sqlite_db import SqliteStateStore
from heyzo.runtime.state_invariants import check_solvency, check_user_monotonic, ensure_state
from heyzo.runtime.structured_log import log_event

Json = Dict[str, Any]

_log = logging.getLogger("heyzo.engine")

# Params pinned into state at first boot; a restart with different values is refused.
_PINNED_PARAMS = ("admin", "cooldown_s", "day_length_s", "min_claim")


class EngineError(RuntimeError):
    pass


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


class HeyZoEngine:
    """Serialized distributor engine.

    Every mutating operation runs under one lock:
      1. deep-copy the committed state
      2. apply the domain function to the copy (checks, then state changes)
      3. execute the staged transfers under a balance savepoint
      4. check invariants against the post-transfer holdings
      5. swap in the copy, persist it, append the receipt to the event log

    Any failure in 2-5 rolls the holdings back to the savepoint and leaves the
    committed state untouched.
    """

    def __init__(
        self,
        *,
        cfg: EngineConfig,
        balances: BalanceAccessor,
        rng: RandomnessProvider,
        store: Optional[SqliteStateStore] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.cfg = cfg
        self._balances = balances
        self._rng = rng
        self._store = store
        self._clock = clock or time.time
        self._lock = threading.Lock()

        if self._store is not None and self._store.exists():
            self.state = self._load_snapshot(self._store.read())
        else:
            self.state = self._initial_state()
            self._persist(self.state)

        # Fail-closed if the persisted params disagree with the config.
        params = self.state["params"]
        for key in _PINNED_PARAMS:
            want = getattr(cfg, key)
            have = params.get(key)
            if have != want:
                raise EngineError(f"{key} mismatch: db={have!r} config={want!r}. Refuse to start.")

    def _initial_state(self) -> Json:
        st: Json = {
            "params": {
                "admin": self.cfg.admin,
                "cooldown_s": int(self.cfg.cooldown_s),
                "day_length_s": int(self.cfg.day_length_s),
                "min_claim": int(self.cfg.min_claim),
            },
            "pools": {},
            "users": {},
            "events": [],
            "stats": {"seq": 0, "ops_total": 0, "claims_total": 0, "claimed_by_asset": {}},
        }
        return ensure_state(st)

    def _load_snapshot(self, snap: Json) -> Json:
        ledger = snap.get("ledger")
        if not isinstance(ledger, dict):
            raise EngineError("snapshot has no ledger object. Refuse to start.")
        holdings = snap.get("holdings")
        if isinstance(holdings, dict) and hasattr(self._balances, "load"):
            self._balances.load(holdings)  # type: ignore[attr-defined]
        return ensure_state(ledger)

    def _persist(self, st: Json) -> None:
        if self._store is None:
            return
        snap: Json = {"ledger": st}
        if hasattr(self._balances, "export"):
            snap["holdings"] = self._balances.export()  # type: ignore[attr-defined]
        self._store.write(snap)

    # ----------------------------
    # Context helpers
    # ----------------------------

    def now(self) -> int:
        return int(self._clock())

    def context(self, caller: str, *, value: int = 0, now: Optional[int] = None) -> CallContext:
        return CallContext(caller=str(caller).strip(), now=self.now() if now is None else int(now), value=int(value))

    # ----------------------------
    # Execution
    # ----------------------------

    def _execute_transfers(self, transfers: List[Transfer]) -> None:
        for t in transfers:
            if t.direction not in {"out", "in"}:
                raise TransferError("unknown_direction", t.to_json())
            try:
                if t.direction == "out":
                    self._balances.transfer_out(t.asset, t.account, t.amount)
                else:
                    self._balances.transfer_in(t.asset, t.account, t.amount)
            except TransferError:
                raise
            except Exception as e:
                # Accessor faults surface as transfer failures, never raw.
                raise TransferError(type(e).__name__, {**t.to_json(), "error": str(e)}) from e

    def execute(self, op: str, ctx: CallContext, payload: Optional[Json] = None) -> Json:
        """Apply one operation atomically and return its receipt.

        Raises ApplyError with the failure kind; on any failure neither the
        ledger state nor the holdings change.
        """
        env = OpEnvelope(op=str(op or "").strip().upper(), ctx=ctx, payload=dict(payload or {}))

        with self._lock:
            working: Json = copy.deepcopy(self.state)
            host = ApplyHost(balance_of=self._balances.balance_of, rng=self._rng)
            sp = self._balances.savepoint()
            try:
                receipt, transfers = apply_op(working, env, host)
                self._execute_transfers(transfers)
                check_solvency(working, self._balances.balance_of)
                check_user_monotonic(self.state, working)

                stats = working["stats"]
                seq = _as_int(stats.get("seq"), 0) + 1
                stats["seq"] = seq
                stats["ops_total"] = _as_int(stats.get("ops_total"), 0) + 1

                receipt = dict(receipt)
                receipt["seq"] = seq
                receipt["caller"] = env.ctx.caller
                receipt["ts"] = int(env.ctx.now)
                receipt["transfers"] = [t.to_json() for t in transfers]

                events = working["events"]
                events.append(copy.deepcopy(receipt))
                if len(events) > MAX_EVENTS:
                    del events[: len(events) - MAX_EVENTS]

                self._persist(working)
            except TransferError as e:
                self._balances.rollback(sp)
                err = ApplyError(TRANSFER_FAILED, e.reason, {"op": env.op, "transfer": e.details})
                self._on_rejected(env, err)
                raise err from e
            except ApplyError as e:
                self._balances.rollback(sp)
                self._on_rejected(env, e)
                raise
            except Exception:
                self._balances.rollback(sp)
                raise

            self.state = working

        self._on_applied(env, receipt)
        return receipt

    def _on_applied(self, env: OpEnvelope, receipt: Json) -> None:
        inc_counter("ops_applied_total")
        if env.op == "CLAIM":
            inc_counter("claims_total")
        set_gauge("event_log_size", len(self.state.get("events") or []))
        log_event(
            _log,
            "heyzo_op_applied",
            op=env.op,
            caller=env.ctx.caller,
            seq=receipt.get("seq"),
            asset=receipt.get("asset"),
            amount=str(receipt.get("amount", receipt.get("total_sent", ""))),
        )

    def _on_rejected(self, env: OpEnvelope, err: ApplyError) -> None:
        inc_counter("ops_rejected_total")
        inc_counter(f"ops_rejected_{err.code}")
        log_event(
            _log,
            "heyzo_op_rejected",
            level=logging.WARNING,
            op=env.op,
            caller=env.ctx.caller,
            code=err.code,
            reason=err.reason,
        )

    # ----------------------------
    # Mutating operations
    # ----------------------------

    def claim(self, ctx: CallContext, asset: str) -> Json:
        return self.execute("CLAIM", ctx, {"asset": asset})

    def set_pool(self, ctx: CallContext, asset: str, total: int, max_send: int, is_native: bool) -> Json:
        return self.execute("POOL_SET", ctx, {"asset": asset, "total": total, "max_send": max_send, "is_native": is_native})

    def admin_send(self, ctx: CallContext, asset: str, to: str, amount: int) -> Json:
        return self.execute("ADMIN_SEND", ctx, {"asset": asset, "to": to, "amount": amount})

    def admin_batch_send(self, ctx: CallContext, asset: str, recipients: List[str], max_send: int) -> Json:
        return self.execute("ADMIN_BATCH_SEND", ctx, {"asset": asset, "recipients": list(recipients), "max_send": max_send})

    def withdraw(self, ctx: CallContext, asset: str, amount: int) -> Json:
        return self.execute("WITHDRAW", ctx, {"asset": asset, "amount": amount})

    def fund_pool(self, ctx: CallContext, asset: str, amount: int, is_native: bool) -> Json:
        return self.execute("POOL_FUND", ctx, {"asset": asset, "amount": amount, "is_native": is_native})

    def top_up(self, ctx: CallContext, asset: str, amount: int) -> Json:
        return self.execute("TOP_UP", ctx, {"asset": asset, "amount": amount})

    def increase_pool(self, ctx: CallContext, asset: str, amount: int) -> Json:
        return self.execute("POOL_INCREASE", ctx, {"asset": asset, "amount": amount})

    # ----------------------------
    # Reads
    # ----------------------------

    def view(self) -> LedgerView:
        with self._lock:
            return LedgerView.from_ledger(self.state)

    def read_state(self) -> Json:
        with self._lock:
            return copy.deepcopy(self.state)

    @property
    def admin(self) -> str:
        return self.view().admin

    @property
    def cooldown(self) -> int:
        return self.view().cooldown_s

    @property
    def day_length(self) -> int:
        return self.view().day_length_s

    @property
    def min_claim(self) -> int:
        return self.view().min_claim

    def get_pool(self, asset: str) -> Pool:
        return self.view().get_pool(asset)

    def list_pools(self) -> List[Tuple[str, Pool]]:
        return self.view().list_pools()

    def get_user_info(self, user: str, asset: str) -> UserClaimState:
        return self.view().get_user_info(user, asset)

    def claim_status(self, user: str, asset: str, now: Optional[int] = None) -> Json:
        return self.view().claim_status(user, asset, self.now() if now is None else int(now))

    def contract_balance(self, asset: str) -> int:
        with self._lock:
            return int(self._balances.balance_of(asset))

    def reserve(self, asset: str) -> int:
        with self._lock:
            view = LedgerView.from_ledger(self.state)
            return int(self._balances.balance_of(asset)) - view.allocated(asset)

    def events(self, limit: int = 100) -> List[Json]:
        n = max(0, int(limit))
        with self._lock:
            evs = self.state.get("events") or []
            return copy.deepcopy(evs[-n:]) if n else []


__all__ = ["EngineError", "HeyZoEngine"]

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from heyzo.runtime.balances import InMemoryBalances, TransferError
from heyzo.runtime.engine import HeyZoEngine
from heyzo.runtime.engine_config import EngineConfig, default_engine_config, validate_engine_config
from heyzo.runtime.sqlite_db import SqliteStateStore

Json = Dict[str, Any]

ADMIN = "admin"
TOKEN = "0x00000000000000000000000000000000000000aa"


class FixedClock:
    """Manually advanced clock. TEST ONLY."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.t = int(start)

    def __call__(self) -> float:
        return float(self.t)

    def advance(self, seconds: int) -> int:
        self.t += int(seconds)
        return self.t


class ScriptedRandomness:
    """Returns queued values, then falls back to a fixed policy.

    policy: "low" | "high" | "mid". Every call is recorded in `calls` as
    (low, high, material).
    """

    def __init__(self, values: Iterable[int] = (), *, policy: str = "low") -> None:
        self._queue: List[int] = [int(v) for v in values]
        self.policy = str(policy)
        self.calls: List[tuple] = []

    def push(self, *values: int) -> None:
        self._queue.extend(int(v) for v in values)

    def draw(self, low: int, high: int, *, material: str) -> int:
        self.calls.append((int(low), int(high), str(material)))
        if self._queue:
            return self._queue.pop(0)
        if self.policy == "high":
            return int(high)
        if self.policy == "mid":
            return (int(low) + int(high)) // 2
        return int(low)


class FailingBalances(InMemoryBalances):
    """InMemoryBalances whose N-th transfer_out (1-based) raises. TEST ONLY."""

    def __init__(self, *, fail_on_out: int = 0, **kw: Any) -> None:
        super().__init__(**kw)
        self.fail_on_out = int(fail_on_out)
        self.outs = 0

    def transfer_out(self, asset: str, to: str, amount: int) -> None:
        self.outs += 1
        if self.fail_on_out and self.outs == self.fail_on_out:
            raise TransferError("scripted_failure", {"asset": asset, "to": to, "amount": int(amount)})
        super().transfer_out(asset, to, amount)


def dev_config(**changes: Any) -> EngineConfig:
    """Dev-mode config with an in-memory store and admin=ADMIN."""
    cfg = replace(default_engine_config(), admin=ADMIN, mode="dev", db_path="", random_seed="00" * 32)
    cfg = replace(cfg, **changes)
    validate_engine_config(cfg)
    return cfg


def make_engine(
    *,
    cfg: Optional[EngineConfig] = None,
    balances: Optional[InMemoryBalances] = None,
    rng: Any = None,
    clock: Optional[FixedClock] = None,
    store: Optional[SqliteStateStore] = None,
    engine_holdings: Optional[Dict[str, int]] = None,
) -> HeyZoEngine:
    """Engine wired to in-memory collaborators.

    engine_holdings seeds the engine's own balance per asset before boot.
    """
    c = cfg or dev_config()
    bal = balances if balances is not None else InMemoryBalances(engine_account=c.engine_account)
    for asset, amount in (engine_holdings or {}).items():
        bal.credit(c.engine_account, asset, int(amount))
    return HeyZoEngine(
        cfg=c,
        balances=bal,
        rng=rng if rng is not None else ScriptedRandomness(),
        store=store,
        clock=clock or FixedClock(),
    )


__all__ = [
    "ADMIN",
    "TOKEN",
    "FailingBalances",
    "FixedClock",
    "ScriptedRandomness",
    "make_engine",
    "dev_config",
]

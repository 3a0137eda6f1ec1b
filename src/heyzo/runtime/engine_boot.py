# src/heyzo/runtime/engine_boot.py

from __future__ import annotations

import logging
from typing import Optional

from heyzo.runtime.balances import InMemoryBalances
from heyzo.runtime.engine import HeyZoEngine
from heyzo.runtime.engine_config import EngineConfig, load_engine_config
from heyzo.runtime.randomness import SeededRandomness
from heyzo.runtime.sqlite_db import SqliteDB, SqliteStateStore
from heyzo.runtime.structured_log import log_event

_log = logging.getLogger("heyzo.engine")


def build_engine(cfg: Optional[EngineConfig] = None) -> HeyZoEngine:
    """
    Build a HeyZoEngine from an explicit config or, if omitted, from
    HEYZO_CONFIG_PATH / HEYZO_* environment variables.

    `heyzo.api.app` calls build_engine() with no args in production.
    """
    c = cfg or load_engine_config()

    balances = InMemoryBalances(engine_account=c.engine_account)
    store = SqliteStateStore(db=SqliteDB(path=c.db_path, mode=c.mode)) if c.db_path.strip() else None
    fresh = store is None or not store.exists()

    # Genesis holdings only seed a brand-new ledger; a restored snapshot
    # carries its own holdings.
    if fresh and c.mode in {"dev", "testnet"}:
        for holder, per in c.genesis_holdings.items():
            for asset, amount in per.items():
                balances.credit(holder, asset, int(amount))

    engine = HeyZoEngine(
        cfg=c,
        balances=balances,
        rng=SeededRandomness(c.random_seed or None),
        store=store,
    )

    log_event(
        _log,
        "heyzo_engine_booted",
        mode=c.mode,
        admin=c.admin,
        db_path=c.db_path,
        restored=not fresh,
    )
    return engine


__all__ = ["build_engine"]

from __future__ import annotations

import pytest

from heyzo.ledger.constants import UNIT
from heyzo.runtime.apply.admin import MAX_BATCH_RECIPIENTS
from heyzo.runtime.errors import ApplyError
from heyzo.testing.fixtures import ADMIN, TOKEN, FailingBalances, ScriptedRandomness, dev_config, make_engine

MIN_CLAIM = UNIT // 100


def _engine(pool_total: int, *, rng=None, balances=None):
    eng = make_engine(rng=rng, balances=balances, engine_holdings={TOKEN: 10 * UNIT})
    eng.set_pool(eng.context(ADMIN), TOKEN, pool_total, UNIT // 10, False)
    return eng


def test_batch_pays_every_recipient_in_order() -> None:
    rng = ScriptedRandomness([MIN_CLAIM, 3 * MIN_CLAIM, 2 * MIN_CLAIM])
    eng = _engine(UNIT, rng=rng)

    receipt = eng.admin_batch_send(eng.context(ADMIN), TOKEN, ["A", "B", "C"], 5 * MIN_CLAIM)

    assert receipt["payouts"] == [
        {"to": "A", "amount": MIN_CLAIM},
        {"to": "B", "amount": 3 * MIN_CLAIM},
        {"to": "C", "amount": 2 * MIN_CLAIM},
    ]
    assert receipt["total_sent"] == 6 * MIN_CLAIM
    assert [t["account"] for t in receipt["transfers"]] == ["A", "B", "C"]
    assert eng.get_pool(TOKEN).total == UNIT - 6 * MIN_CLAIM
    assert eng._balances.holder_balance("B", TOKEN) == 3 * MIN_CLAIM


def test_each_recipient_gets_an_independent_draw() -> None:
    rng = ScriptedRandomness()
    eng = _engine(UNIT, rng=rng)
    eng.admin_batch_send(eng.context(ADMIN), TOKEN, ["A", "B", "C"], UNIT // 10)

    assert [(lo, hi) for lo, hi, _ in rng.calls] == [(MIN_CLAIM, UNIT // 10)] * 3
    assert len({m for _, _, m in rng.calls}) == 3


def test_batch_overdraw_fails_with_no_partial_payouts() -> None:
    # Every draw is exactly MIN_CLAIM; the pool only covers two of three.
    eng = _engine(2 * MIN_CLAIM + MIN_CLAIM // 2)
    before = eng.read_state()

    with pytest.raises(ApplyError) as ei:
        eng.admin_batch_send(eng.context(ADMIN), TOKEN, ["A", "B", "C"], MIN_CLAIM)

    assert ei.value.code == "insufficient_pool"
    assert ei.value.details["index"] == 2
    assert ei.value.details["recipient"] == "C"
    assert eng._balances.holder_balance("A", TOKEN) == 0
    assert eng._balances.holder_balance("B", TOKEN) == 0
    assert eng.read_state() == before


def test_batch_completes_when_pool_exactly_covers_draws() -> None:
    eng = _engine(3 * MIN_CLAIM)
    eng.admin_batch_send(eng.context(ADMIN), TOKEN, ["A", "B", "C"], MIN_CLAIM)
    assert eng.get_pool(TOKEN).total == 0


def test_transfer_failure_mid_batch_reverts_earlier_payouts() -> None:
    cfg = dev_config()
    bal = FailingBalances(fail_on_out=2, engine_account=cfg.engine_account)
    eng = _engine(UNIT, balances=bal)
    before = eng.read_state()
    holdings_before = bal.export()

    with pytest.raises(ApplyError) as ei:
        eng.admin_batch_send(eng.context(ADMIN), TOKEN, ["A", "B", "C"], MIN_CLAIM)

    assert ei.value.code == "transfer_failed"
    assert bal.holder_balance("A", TOKEN) == 0
    assert bal.export() == holdings_before
    assert eng.read_state() == before


def test_batch_rejects_bad_payloads() -> None:
    eng = _engine(UNIT)
    ctx = eng.context(ADMIN)

    with pytest.raises(ApplyError) as ei:
        eng.admin_batch_send(ctx, TOKEN, [], MIN_CLAIM)
    assert ei.value.code == "invalid_payload"

    with pytest.raises(ApplyError) as ei:
        eng.admin_batch_send(ctx, TOKEN, ["A"], MIN_CLAIM - 1)
    assert ei.value.reason == "max_send_below_min_claim"

    with pytest.raises(ApplyError) as ei:
        eng.admin_batch_send(ctx, TOKEN, ["A", ""], MIN_CLAIM)
    assert ei.value.code == "invalid_payload"

    with pytest.raises(ApplyError) as ei:
        eng.admin_batch_send(ctx, TOKEN, ["r"] * (MAX_BATCH_RECIPIENTS + 1), MIN_CLAIM)
    assert ei.value.reason == "too_many_recipients"

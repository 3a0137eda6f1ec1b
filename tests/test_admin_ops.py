from __future__ import annotations

import pytest

from heyzo.ledger.constants import NATIVE_ASSET, UNIT
from heyzo.ledger.types import Pool
from heyzo.runtime.errors import ApplyError
from heyzo.testing.fixtures import ADMIN, TOKEN, make_engine

MAX_SEND = UNIT // 10


def _token_engine(*, holdings: int = 2 * UNIT, pool_total: int = UNIT):
    eng = make_engine(engine_holdings={TOKEN: holdings})
    eng.set_pool(eng.context(ADMIN), TOKEN, pool_total, MAX_SEND, False)
    return eng


@pytest.mark.parametrize(
    "call",
    [
        lambda e, c: e.set_pool(c, TOKEN, 1, 1, False),
        lambda e, c: e.admin_send(c, TOKEN, "mallory", 1),
        lambda e, c: e.admin_batch_send(c, TOKEN, ["mallory"], UNIT // 10),
        lambda e, c: e.increase_pool(c, TOKEN, 1),
        lambda e, c: e.withdraw(c, TOKEN, 1),
    ],
)
def test_admin_ops_reject_non_admin(call) -> None:
    eng = _token_engine()
    before_state = eng.read_state()
    before_holdings = eng._balances.export()

    with pytest.raises(ApplyError) as ei:
        call(eng, eng.context("mallory"))
    assert ei.value.code == "unauthorized"

    assert eng.read_state() == before_state
    assert eng._balances.export() == before_holdings


def test_set_pool_is_destructive_overwrite() -> None:
    eng = _token_engine()
    receipt = eng.set_pool(eng.context(ADMIN), TOKEN, UNIT // 2, MAX_SEND * 2, False)

    assert receipt["previous"] == {"total": UNIT, "max_send": MAX_SEND, "is_native": False}
    assert eng.get_pool(TOKEN) == Pool(total=UNIT // 2, max_send=MAX_SEND * 2, is_native=False)
    assert eng.reserve(TOKEN) == 2 * UNIT - UNIT // 2


def test_set_pool_cannot_exceed_holdings() -> None:
    eng = _token_engine()
    with pytest.raises(ApplyError) as ei:
        eng.set_pool(eng.context(ADMIN), TOKEN, 2 * UNIT + 1, MAX_SEND, False)
    assert ei.value.code == "insufficient_reserve"
    assert eng.get_pool(TOKEN).total == UNIT


def test_set_pool_native_flag_must_match_asset() -> None:
    eng = make_engine(engine_holdings={NATIVE_ASSET: UNIT, TOKEN: UNIT})
    with pytest.raises(ApplyError) as ei:
        eng.set_pool(eng.context(ADMIN), NATIVE_ASSET, UNIT, MAX_SEND, False)
    assert ei.value.code == "invalid_payload"
    with pytest.raises(ApplyError):
        eng.set_pool(eng.context(ADMIN), TOKEN, UNIT, MAX_SEND, True)


def test_admin_send_pays_from_pool() -> None:
    eng = _token_engine()
    receipt = eng.admin_send(eng.context(ADMIN), TOKEN, "bob", UNIT // 4)

    assert receipt["pool_total"] == UNIT - UNIT // 4
    assert eng.get_pool(TOKEN).total == UNIT - UNIT // 4
    assert eng._balances.holder_balance("bob", TOKEN) == UNIT // 4
    # Reserve is untouched: holdings and pool dropped by the same amount.
    assert eng.reserve(TOKEN) == UNIT


def test_admin_send_bypasses_cooldown() -> None:
    eng = _token_engine()
    eng.admin_send(eng.context(ADMIN), TOKEN, "bob", 1)
    eng.admin_send(eng.context(ADMIN), TOKEN, "bob", 1)
    assert eng._balances.holder_balance("bob", TOKEN) == 2


def test_admin_send_over_pool_total_fails() -> None:
    eng = _token_engine()
    with pytest.raises(ApplyError) as ei:
        eng.admin_send(eng.context(ADMIN), TOKEN, "bob", UNIT + 1)
    assert ei.value.code == "insufficient_pool"
    assert eng._balances.holder_balance("bob", TOKEN) == 0


def test_withdraw_draws_only_from_reserve() -> None:
    eng = _token_engine()
    assert eng.reserve(TOKEN) == UNIT

    with pytest.raises(ApplyError) as ei:
        eng.withdraw(eng.context(ADMIN), TOKEN, UNIT + 1)
    assert ei.value.code == "insufficient_reserve"

    eng.withdraw(eng.context(ADMIN), TOKEN, UNIT // 2)
    assert eng.get_pool(TOKEN).total == UNIT
    assert eng.reserve(TOKEN) == UNIT // 2
    assert eng._balances.holder_balance(ADMIN, TOKEN) == UNIT // 2


def test_top_up_then_withdraw_leaves_pools_unchanged() -> None:
    eng = _token_engine(holdings=UNIT, pool_total=UNIT)
    eng._balances.credit("alice", TOKEN, 100)
    pool_before = eng.get_pool(TOKEN)

    eng.top_up(eng.context("alice"), TOKEN, 100)
    assert eng.reserve(TOKEN) == 100
    eng.withdraw(eng.context(ADMIN), TOKEN, 100)

    assert eng.get_pool(TOKEN) == pool_before
    assert eng.reserve(TOKEN) == 0
    assert eng._balances.holder_balance(ADMIN, TOKEN) == 100


def test_increase_pool_reclassifies_reserve() -> None:
    eng = _token_engine()
    receipt = eng.increase_pool(eng.context(ADMIN), TOKEN, UNIT // 2)

    assert receipt["total"] == UNIT + UNIT // 2
    assert eng.get_pool(TOKEN).total == UNIT + UNIT // 2
    assert eng.reserve(TOKEN) == UNIT // 2
    assert eng.contract_balance(TOKEN) == 2 * UNIT

    with pytest.raises(ApplyError) as ei:
        eng.increase_pool(eng.context(ADMIN), TOKEN, UNIT // 2 + 1)
    assert ei.value.code == "insufficient_reserve"


def test_fund_pool_is_open_to_any_caller() -> None:
    eng = _token_engine()
    eng._balances.credit("alice", TOKEN, UNIT)

    receipt = eng.fund_pool(eng.context("alice"), TOKEN, UNIT // 2, False)
    assert receipt["total"] == UNIT + UNIT // 2
    assert eng.get_pool(TOKEN).max_send == MAX_SEND
    assert eng.contract_balance(TOKEN) == 2 * UNIT + UNIT // 2
    assert eng.reserve(TOKEN) == UNIT
    assert eng._balances.holder_balance("alice", TOKEN) == UNIT // 2


def test_fund_pool_creates_disabled_pool_for_new_asset() -> None:
    eng = make_engine()
    eng._balances.credit("alice", TOKEN, 10)
    eng.fund_pool(eng.context("alice"), TOKEN, 10, False)
    assert eng.get_pool(TOKEN) == Pool(total=10, max_send=0, is_native=False)

    with pytest.raises(ApplyError) as ei:
        eng.claim(eng.context("bob"), TOKEN)
    assert ei.value.code == "pool_not_configured"


def test_native_fund_requires_attached_value() -> None:
    eng = make_engine()
    eng._balances.credit("alice", NATIVE_ASSET, UNIT)

    with pytest.raises(ApplyError) as ei:
        eng.fund_pool(eng.context("alice", value=1), NATIVE_ASSET, UNIT, True)
    assert ei.value.code == "invalid_payload"

    eng.fund_pool(eng.context("alice", value=UNIT), NATIVE_ASSET, UNIT, True)
    assert eng.get_pool(NATIVE_ASSET).total == UNIT
    assert eng.contract_balance(NATIVE_ASSET) == UNIT


def test_fund_pool_without_funds_fails_atomically() -> None:
    eng = _token_engine()
    before = eng.read_state()
    with pytest.raises(ApplyError) as ei:
        eng.fund_pool(eng.context("pauper"), TOKEN, 5, False)
    assert ei.value.code == "transfer_failed"
    assert ei.value.reason == "insufficient_funds"
    assert eng.read_state() == before


def test_amounts_accept_decimal_strings_and_reject_garbage() -> None:
    eng = _token_engine()
    eng.admin_send(eng.context(ADMIN), TOKEN, "bob", "1000")  # type: ignore[arg-type]
    assert eng._balances.holder_balance("bob", TOKEN) == 1000

    for bad in ("-1", "1.5", "abc", "\u00b2", "\u0661\u0662", None, True, -5):
        with pytest.raises(ApplyError) as ei:
            eng.admin_send(eng.context(ADMIN), TOKEN, "bob", bad)  # type: ignore[arg-type]
        assert ei.value.code == "invalid_payload"
    assert eng._balances.holder_balance("bob", TOKEN) == 1000


def test_solvency_holds_across_mixed_operations() -> None:
    eng = _token_engine()
    eng._balances.credit("alice", TOKEN, UNIT)
    ctx = eng.context(ADMIN)
    eng.fund_pool(eng.context("alice"), TOKEN, UNIT // 3, False)
    eng.top_up(eng.context("alice"), TOKEN, UNIT // 3)
    eng.increase_pool(ctx, TOKEN, UNIT // 5)
    eng.admin_send(ctx, TOKEN, "bob", UNIT // 7)
    eng.claim(eng.context("carol"), TOKEN)
    eng.withdraw(ctx, TOKEN, eng.reserve(TOKEN))

    assert eng.reserve(TOKEN) == 0
    assert sum(p.total for _, p in eng.list_pools()) <= eng.contract_balance(TOKEN)

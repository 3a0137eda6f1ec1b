from __future__ import annotations

import pytest

from heyzo.runtime.apply.host import ApplyHost
from heyzo.runtime.errors import ApplyError
from heyzo.runtime.op_dispatch import apply_op
from heyzo.testing.fixtures import ScriptedRandomness


def _host() -> ApplyHost:
    return ApplyHost(balance_of=lambda asset: 0, rng=ScriptedRandomness())


def test_unknown_op_is_rejected() -> None:
    with pytest.raises(ApplyError) as ei:
        apply_op({}, {"op": "MINT", "ctx": {"caller": "a", "now": 1}}, _host())
    assert ei.value.code == "op_unimplemented"


def test_missing_op_is_invalid() -> None:
    with pytest.raises(ApplyError) as ei:
        apply_op({}, {"ctx": {"caller": "a", "now": 1}}, _host())
    assert ei.value.code == "invalid_payload"


def test_unexpected_errors_are_wrapped_as_domain_errors() -> None:
    def boom(asset: str) -> int:
        raise KeyError(asset)

    host = ApplyHost(balance_of=boom, rng=ScriptedRandomness())
    st = {"params": {"admin": "a"}}
    with pytest.raises(ApplyError) as ei:
        apply_op(st, {"op": "POOL_SET", "ctx": {"caller": "a", "now": 1}, "payload": {"asset": "t", "total": 1, "max_send": 1}}, host)
    assert ei.value.code == "domain_error"
    assert ei.value.reason == "KeyError"


def test_apply_mutates_working_state_and_stages_transfers() -> None:
    st = {"params": {"admin": "a"}}
    receipt, transfers = apply_op(
        st,
        {"op": "top_up", "ctx": {"caller": "u", "now": 1}, "payload": {"asset": "t", "amount": "5"}},
        _host(),
    )
    assert receipt == {"applied": "TOP_UP", "asset": "t", "amount": 5, "from": "u"}
    assert [t.to_json() for t in transfers] == [{"direction": "in", "asset": "t", "account": "u", "amount": 5}]
    assert st["pools"] == {}

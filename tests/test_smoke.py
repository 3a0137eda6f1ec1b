# tests/test_smoke.py
from __future__ import annotations

from heyzo.runtime.op_dispatch import SUPPORTED_OPS


def test_imports_smoke() -> None:
    # If this test runs, basic imports and pythonpath are working.
    assert True


def test_every_public_operation_is_dispatchable() -> None:
    assert SUPPORTED_OPS == {
        "CLAIM",
        "POOL_SET",
        "POOL_FUND",
        "TOP_UP",
        "POOL_INCREASE",
        "ADMIN_SEND",
        "ADMIN_BATCH_SEND",
        "WITHDRAW",
    }

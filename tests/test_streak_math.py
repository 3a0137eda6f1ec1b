from __future__ import annotations

from heyzo.ledger.constants import UNIT
from heyzo.ledger.types import Pool, UserClaimState
from heyzo.runtime.apply.claims import bonus_bps, effective_cap, next_streak

DAY = 86_400


def test_first_claim_starts_streak_at_one() -> None:
    assert next_streak(UserClaimState(), now=1_000, day_length_s=DAY) == 1


def test_claim_within_day_window_extends_streak() -> None:
    prev = UserClaimState(streak=4, effective_max_send=0, last_claim=10_000)
    assert next_streak(prev, now=10_000 + DAY, day_length_s=DAY) == 5


def test_gap_longer_than_day_resets_streak() -> None:
    prev = UserClaimState(streak=9, effective_max_send=0, last_claim=10_000)
    assert next_streak(prev, now=10_000 + DAY + 1, day_length_s=DAY) == 1


def test_bonus_is_flat_ten_percent_per_ten_days() -> None:
    assert bonus_bps(0) == 10_000
    assert bonus_bps(1) == 10_000
    assert bonus_bps(9) == 10_000
    assert bonus_bps(10) == 11_000
    assert bonus_bps(19) == 11_000
    assert bonus_bps(25) == 12_000
    assert bonus_bps(100) == 20_000


def test_effective_cap_applies_bonus_to_base_max_send() -> None:
    pool = Pool(total=10 * UNIT, max_send=UNIT // 10, is_native=True)
    assert effective_cap(pool, 1) == UNIT // 10
    assert effective_cap(pool, 10) == UNIT // 10 * 11 // 10
    assert effective_cap(pool, 20) == UNIT // 10 * 12 // 10


def test_effective_cap_never_exceeds_pool_total() -> None:
    pool = Pool(total=UNIT // 20, max_send=UNIT // 10, is_native=False)
    assert effective_cap(pool, 30) == UNIT // 20

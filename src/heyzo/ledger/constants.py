# src/heyzo/ledger/constants.py
from __future__ import annotations

"""Distribution ledger constants.

Amounts are integer base units (18 decimals, like the host chain's native
coin). Times are unix seconds.
"""

# Monetary precision (1 unit = 1e18 base units)
UNIT_DECIMALS: int = 18
UNIT: int = 10**UNIT_DECIMALS

# Reserved asset id for the chain's native value (address(0) on the host).
NATIVE_ASSET: str = "0x0000000000000000000000000000000000000000"

# Claim floor: 0.01 of a unit.
DEFAULT_MIN_CLAIM: int = UNIT // 100

# Claim cadence
DEFAULT_COOLDOWN_S: int = 15 * 60
DEFAULT_DAY_LENGTH_S: int = 24 * 60 * 60

# Streak bonus: +10% of max_send for every 10 consecutive qualifying claims.
STREAK_BONUS_EVERY: int = 10
STREAK_BONUS_BPS: int = 1_000
BPS_DENOM: int = 10_000

# Event log retention (entries kept in state)
MAX_EVENTS: int = 1_000

# Claim status labels
STATUS_NEVER_CLAIMED: str = "never_claimed"
STATUS_COOLDOWN_ACTIVE: str = "cooldown_active"
STATUS_READY_TO_CLAIM: str = "ready_to_claim"

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from heyzo.ledger.types import Transfer
from heyzo.runtime.randomness import RandomnessProvider

Json = Dict[str, Any]

# Every applier returns its receipt plus the value movements to execute once
# the state changes are in place.
ApplyResult = Tuple[Json, List[Transfer]]


@dataclass(frozen=True)
class ApplyHost:
    """Read-only host services available to appliers.

    balance_of: engine holdings per asset (never mutated during apply)
    rng:        amount randomness
    """

    balance_of: Callable[[str], int]
    rng: RandomnessProvider

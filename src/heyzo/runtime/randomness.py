from __future__ import annotations

"""Claim-amount randomness.

The host chain's block-derived entropy is not cryptographically secure
(validators can bias it). Amount draws therefore go through an injectable
RandomnessProvider: the default SeededRandomness reproduces "hash of block-ish
material" semantics, and it can be swapped for a VRF-backed provider or a
scripted one in tests without touching the apply logic.
"""

import hashlib
import random
import secrets
from typing import Protocol, runtime_checkable


@runtime_checkable
class RandomnessProvider(Protocol):
    def draw(self, low: int, high: int, *, material: str) -> int:
        """Return an int uniformly distributed in [low, high] (inclusive)."""
        ...


def draw_material(*, asset: str, caller: str, now: int, seq: int, index: int = 0) -> str:
    """Per-call seed material: unique per operation (seq) and per recipient (index)."""
    return f"{asset}|{caller}|{int(now)}|{int(seq)}|{int(index)}"


class SeededRandomness:
    """Deterministic draws from sha256(seed | material).

    Two providers built with the same seed produce the same amounts for the
    same call sequence, which keeps replays reproducible.
    """

    def __init__(self, seed: str | None = None) -> None:
        s = str(seed or "").strip()
        self._seed = s if s else secrets.token_hex(32)

    def draw(self, low: int, high: int, *, material: str) -> int:
        lo = int(low)
        hi = int(high)
        if hi < lo:
            raise ValueError(f"empty draw range [{lo}, {hi}]")
        seed_material = f"heyzo:draw:{self._seed}|{material}".encode("utf-8")
        seed = int.from_bytes(hashlib.sha256(seed_material).digest(), "big")
        rng = random.Random(seed)
        return rng.randint(lo, hi)


__all__ = ["RandomnessProvider", "SeededRandomness", "draw_material"]

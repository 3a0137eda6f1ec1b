from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Error kinds. Every failure path surfaces exactly one of these codes.
UNAUTHORIZED = "unauthorized"
CLAIM_TOO_SOON = "claim_too_soon"
POOL_NOT_CONFIGURED = "pool_not_configured"
POOL_EXHAUSTED = "pool_exhausted"
INSUFFICIENT_POOL = "insufficient_pool"
INSUFFICIENT_RESERVE = "insufficient_reserve"
TRANSFER_FAILED = "transfer_failed"
INVALID_PAYLOAD = "invalid_payload"
INVARIANT_VIOLATION = "invariant_violation"

# Clients match this text literally.
CLAIM_TOO_SOON_REASON = "Claim too soon"


@dataclass
class ApplyError(Exception):
    """Canonical error type for distributor operation failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

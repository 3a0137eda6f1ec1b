"""Domain-specific apply modules.

These modules implement deterministic distributor state transitions for
subsets of operations. heyzo.runtime.op_dispatch routes each OpEnvelope to
the first module that claims it.

NOTE: Keep this package import-safe (no imports that require op_dispatch).
"""

from __future__ import annotations

__all__ = [
    "admin",
    "claims",
    "host",
    "pools",
]

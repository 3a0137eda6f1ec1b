from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class CallContext:
    """Who is calling, when, and with how much native value attached.

    caller: account id of the principal invoking the operation
    now:    unix seconds the operation executes at
    value:  native value attached to the call (consumed by native deposits)
    """

    caller: str
    now: int
    value: int = 0

    @staticmethod
    def from_json(j: Any) -> "CallContext":
        if isinstance(j, CallContext):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return CallContext(
            caller=str(j.get("caller", "")).strip(),
            now=int(j.get("now", 0)),
            value=int(j.get("value", 0) or 0),
        )


@dataclass(frozen=True)
class OpEnvelope:
    """One distributor operation: name, caller context, and its arguments."""

    op: str
    ctx: CallContext
    payload: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_json(j: Any) -> "OpEnvelope":
        if isinstance(j, OpEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return OpEnvelope(
            op=str(j.get("op", "")).strip().upper(),
            ctx=CallContext.from_json(j.get("ctx", {}) or {}),
            payload=dict(j.get("payload", {}) or {}),
        )


# src/heyzo/runtime/op_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from heyzo.runtime.apply.admin import ADMIN_OP_TYPES, apply_admin
from heyzo.runtime.apply.claims import CLAIM_OP_TYPES, apply_claims
from heyzo.runtime.apply.host import ApplyHost, ApplyResult
from heyzo.runtime.apply.pools import POOL_OP_TYPES, apply_pools
from heyzo.runtime.call_context import OpEnvelope
from heyzo.runtime.errors import INVALID_PAYLOAD, ApplyError
from heyzo.runtime.state_invariants import ensure_state

Json = Dict[str, Any]
ApplyFn = Callable[[Json, OpEnvelope, ApplyHost], Optional[ApplyResult]]

SUPPORTED_OPS = frozenset(POOL_OP_TYPES | CLAIM_OP_TYPES | ADMIN_OP_TYPES)

_APPLIERS: tuple[ApplyFn, ...] = (
    apply_claims,
    apply_pools,
    apply_admin,
)


def apply_op(state: Json, env: Any, host: ApplyHost) -> ApplyResult:
    """Dispatch an OpEnvelope to the first domain applier that claims it.

    Mutates `state` in place; callers pass a working copy and commit it only
    once the returned transfers have executed.
    """

    ensure_state(state)

    env_norm: OpEnvelope = env if isinstance(env, OpEnvelope) else OpEnvelope.from_json(env)

    t = str(env_norm.op or "").strip().upper()
    if not t:
        raise ApplyError(INVALID_PAYLOAD, "missing_op", {"op": t})

    for fn in _APPLIERS:
        try:
            out = fn(state, env_norm, host)
        except ApplyError:
            raise
        except Exception as e:
            raise ApplyError(
                "domain_error",
                type(e).__name__,
                {"op": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise ApplyError("op_unimplemented", "op_not_implemented", {"op": t})


__all__ = ["SUPPORTED_OPS", "apply_op"]

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from heyzo.api.routes_public_parts.common import _amount_str, _engine

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


@router.get("/health")
def health(request: Request) -> dict[str, object]:
    # Never fails: reports ready=false when no engine is attached.
    eng = getattr(request.app.state, "engine", None)
    if eng is None:
        return {"ok": True, "service": "heyzo", "version": "v1", "ts_ms": _now_ms(), "ready": False}

    st = eng.read_state()
    stats = st.get("stats") if isinstance(st.get("stats"), dict) else {}
    return {
        "ok": True,
        "service": "heyzo",
        "version": "v1",
        "ts_ms": _now_ms(),
        "ready": True,
        "mode": eng.cfg.mode,
        "seq": int(stats.get("seq", 0)),
        "pools": len(st.get("pools") or {}),
    }


@router.get("/config")
def config(request: Request) -> dict[str, object]:
    eng = _engine(request)
    return {
        "ok": True,
        "admin": eng.admin,
        "cooldown": int(eng.cooldown),
        "day_length": int(eng.day_length),
        "min_claim": _amount_str(eng.min_claim),
    }

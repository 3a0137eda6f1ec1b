# src/heyzo/runtime/engine_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from heyzo.ledger.constants import DEFAULT_COOLDOWN_S, DEFAULT_DAY_LENGTH_S, DEFAULT_MIN_CLAIM

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_holdings(v: Any) -> Dict[str, Dict[str, int]]:
    if not isinstance(v, dict):
        return {}
    out: Dict[str, Dict[str, int]] = {}
    for holder, per in v.items():
        if not isinstance(per, dict):
            continue
        out[str(holder)] = {str(a): _as_int(amt, 0) for a, amt in per.items()}
    return out


@dataclass(frozen=True)
class EngineConfig:
    # Constructor-time configuration; immutable for the engine's lifetime.
    admin: str
    cooldown_s: int
    day_length_s: int
    min_claim: int

    mode: str  # "dev" | "testnet" | "prod"

    # SQLite snapshot path. Empty string keeps state in memory only.
    db_path: str

    # Hex seed for SeededRandomness. Empty -> fresh random seed at boot.
    random_seed: str

    # Holder id the balance accessor uses for the engine's own holdings.
    engine_account: str

    api_host: str
    api_port: int

    log_level: str

    # dev/testnet only: {holder: {asset: amount}} minted into the in-memory accessor.
    genesis_holdings: Dict[str, Dict[str, int]] = field(default_factory=dict)


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_engine_config(cfg: EngineConfig) -> None:
    """Fail-fast validation for operator config.

    Prevent silent misconfiguration that could put the distributor into an
    unsafe posture or an unusable state.
    """

    if not isinstance(cfg.admin, str) or not cfg.admin.strip():
        raise ValueError("admin must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if int(cfg.cooldown_s) < 0:
        raise ValueError(f"cooldown_s must be >= 0; got: {cfg.cooldown_s}")

    if int(cfg.day_length_s) <= 0:
        raise ValueError(f"day_length_s must be > 0; got: {cfg.day_length_s}")

    if int(cfg.min_claim) < 1:
        raise ValueError(f"min_claim must be >= 1; got: {cfg.min_claim}")

    if not isinstance(cfg.engine_account, str) or not cfg.engine_account.strip():
        raise ValueError("engine_account must be a non-empty string")

    if cfg.engine_account.strip() == cfg.admin.strip():
        raise ValueError("engine_account must differ from admin")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if cfg.genesis_holdings and mode == "prod":
        # Minting balances out of thin air is a dev/testnet convenience only.
        raise ValueError("genesis_holdings is not allowed in prod mode")

    for holder, per in (cfg.genesis_holdings or {}).items():
        for asset, amt in per.items():
            if int(amt) < 0:
                raise ValueError(f"genesis_holdings[{holder!r}][{asset!r}] must be >= 0")


def default_engine_config() -> EngineConfig:
    return EngineConfig(
        admin="",
        cooldown_s=DEFAULT_COOLDOWN_S,
        day_length_s=DEFAULT_DAY_LENGTH_S,
        min_claim=DEFAULT_MIN_CLAIM,
        # Production-safe default: never drop into dev posture implicitly.
        mode="prod",
        db_path="./data/heyzo.db",
        random_seed="",
        engine_account="heyzo",
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
        genesis_holdings={},
    )


def _read_config_mapping(path: str) -> Json:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        import yaml

        raw = yaml.safe_load(text)
    else:
        raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError("engine config must be a mapping/object")
    return raw


def engine_config_from_mapping(raw: Json, *, base: Optional[EngineConfig] = None) -> EngineConfig:
    d = base or default_engine_config()
    return EngineConfig(
        admin=_as_str(raw.get("admin"), d.admin).strip(),
        cooldown_s=_as_int(raw.get("cooldown_s"), d.cooldown_s),
        day_length_s=_as_int(raw.get("day_length_s"), d.day_length_s),
        min_claim=_as_int(raw.get("min_claim"), d.min_claim),
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        db_path=str(raw.get("db_path")) if raw.get("db_path") is not None else d.db_path,
        random_seed=_as_str(raw.get("random_seed"), d.random_seed).strip(),
        engine_account=_as_str(raw.get("engine_account"), d.engine_account).strip(),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
        genesis_holdings=_as_holdings(raw.get("genesis_holdings")) if "genesis_holdings" in raw else d.genesis_holdings,
    )


def _env_overrides() -> Json:
    out: Json = {}
    mapping = {
        "HEYZO_ADMIN": "admin",
        "HEYZO_COOLDOWN_S": "cooldown_s",
        "HEYZO_DAY_LENGTH_S": "day_length_s",
        "HEYZO_MIN_CLAIM": "min_claim",
        "HEYZO_MODE": "mode",
        "HEYZO_DB_PATH": "db_path",
        "HEYZO_RANDOM_SEED": "random_seed",
        "HEYZO_ENGINE_ACCOUNT": "engine_account",
        "HEYZO_API_HOST": "api_host",
        "HEYZO_API_PORT": "api_port",
        "HEYZO_LOG_LEVEL": "log_level",
    }
    for env_name, key in mapping.items():
        v = os.environ.get(env_name)
        if v is not None:
            out[key] = v
    return out


def read_engine_config_file(path: str) -> EngineConfig:
    cfg = engine_config_from_mapping(_read_config_mapping(path))
    validate_engine_config(cfg)
    return cfg


def load_engine_config(*, config_path: Optional[str] = None) -> EngineConfig:
    """File (HEYZO_CONFIG_PATH, JSON or YAML) first, then HEYZO_* env overrides."""
    p = config_path or os.environ.get("HEYZO_CONFIG_PATH")
    cfg = engine_config_from_mapping(_read_config_mapping(p)) if p else default_engine_config()

    overrides = _env_overrides()
    if overrides:
        cfg = engine_config_from_mapping(overrides, base=cfg)

    validate_engine_config(cfg)
    return cfg


def with_overrides(cfg: EngineConfig, **changes: Any) -> EngineConfig:
    out = replace(cfg, **changes)
    validate_engine_config(out)
    return out

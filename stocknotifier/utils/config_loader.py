from __future__ import annotations

import logging
import os
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_cache_lock = threading.Lock()
_cached: dict[str, Any] | None = None
_cached_path: str | None = None

_TRUTHY = {"1", "true", "yes", "on"}


def _project_root() -> Path:
    # stocknotifier/utils/config_loader.py -> stocknotifier/utils -> stocknotifier -> project root
    return Path(__file__).resolve().parents[2]


def default_config_path() -> Path:
    env_path = (os.environ.get("STOCKNOTIFIER_CONFIG") or "").strip()
    if env_path:
        return Path(env_path)
    return _project_root() / "config" / "config.yaml"


def _is_truthy(value: Any) -> bool:
    return str(value).strip().lower() in _TRUTHY


def _apply_env_overrides(cfg: dict[str, Any]) -> None:
    """
    Override selected YAML settings with environment variables.

    Credentials are deliberately not copied into the config dict; the exchange client factory
    reads them straight from the environment.
    """
    binance = cfg.setdefault("binance", {})
    if os.getenv("BINANCE_USE_TESTNET") is not None:
        binance["use_testnet"] = _is_truthy(os.environ["BINANCE_USE_TESTNET"])
    if os.getenv("BINANCE_BASE_URL"):
        binance["base_url"] = os.environ["BINANCE_BASE_URL"]

    exchange = cfg.setdefault("exchange", {})
    if os.getenv("STOCKNOTIFIER_EXCHANGE_TIMEOUT_SECONDS"):
        exchange["timeout_seconds"] = float(os.environ["STOCKNOTIFIER_EXCHANGE_TIMEOUT_SECONDS"])

    api = cfg.setdefault("api", {})
    if os.getenv("STOCKNOTIFIER_API_HOST"):
        api["host"] = os.environ["STOCKNOTIFIER_API_HOST"]
    if os.getenv("STOCKNOTIFIER_API_PORT"):
        api["port"] = int(os.environ["STOCKNOTIFIER_API_PORT"])


def validate_config(cfg: dict[str, Any]) -> None:
    """Fail fast on malformed sections. Missing sections fall back to defaults."""
    for section in ("binance", "exchange", "api"):
        if section in cfg and not isinstance(cfg[section], dict):
            raise ValueError(f"Config section {section!r} must be a mapping; got {type(cfg[section]).__name__}")

    exchange = cfg.get("exchange") or {}
    for k in ("timeout_seconds", "time_ttl_seconds"):
        v = exchange.get(k)
        if v is None:
            continue
        if isinstance(v, bool) or not isinstance(v, (int, float)) or v <= 0:
            raise ValueError(f"exchange.{k} must be a positive number; got {v!r}")

    api = cfg.get("api") or {}
    port = api.get("port")
    if port is not None and (isinstance(port, bool) or not isinstance(port, int)):
        raise ValueError(f"api.port must be an integer; got {port!r}")


def load_config(config_path: str | Path | None = None, *, force_reload: bool = False) -> dict[str, Any]:
    """
    Load the YAML config once and reuse it across the process.

    - Reads `config/config.yaml` by default (or `STOCKNOTIFIER_CONFIG`).
    - A missing file yields an empty config; every setting has a default.
    - Applies environment overrides for a small set of operational settings.
    - Returns a deep copy so callers can safely mutate local copies.
    """
    global _cached, _cached_path

    path = Path(config_path) if config_path else default_config_path()
    path_str = str(path.resolve())

    with _cache_lock:
        if not force_reload and _cached is not None and _cached_path == path_str:
            return deepcopy(_cached)

        if path.exists():
            with path.open("r", encoding="utf-8") as f:
                cfg = yaml.safe_load(f) or {}
        else:
            logger.warning(f"Config file not found at {path_str}; using defaults")
            cfg = {}

        if not isinstance(cfg, dict):
            raise ValueError(f"Config must be a YAML mapping (dict); got {type(cfg).__name__}")

        _apply_env_overrides(cfg)
        validate_config(cfg)

        _cached = cfg
        _cached_path = path_str
        logger.info(f"Loaded config from {path_str}")
        return deepcopy(cfg)

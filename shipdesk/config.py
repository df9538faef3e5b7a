from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = "shipdesk.json"
DEFAULT_API_BASE_URL = "https://api.shipdesk.local/api"


@lru_cache(maxsize=1)
def load_config(path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    load_dotenv()
    p = Path(path)
    if not p.exists():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def _get(cfg: Dict[str, Any], *path: str, default: Any = None) -> Any:
    cur: Any = cfg
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def api_base_url() -> str:
    cfg = load_config()
    env = os.getenv("SHIPDESK_API_BASE_URL")
    if env:
        return env.rstrip("/")
    return str(_get(cfg, "api", "base_url", default=DEFAULT_API_BASE_URL) or DEFAULT_API_BASE_URL).rstrip("/")


def api_timeout_s() -> float:
    cfg = load_config()
    try:
        return float(_get(cfg, "api", "timeout_s", default=30))
    except (TypeError, ValueError):
        return 30.0


def storage_dir() -> str:
    cfg = load_config()
    return str(_get(cfg, "storage", "dir", default="./data/session") or "./data/session")


def storage_timeout_s() -> float:
    """
    Upper bound for a single persisted-storage call. Expiry counts as "record absent".
    """
    cfg = load_config()
    try:
        return float(_get(cfg, "storage", "timeout_s", default=3))
    except (TypeError, ValueError):
        return 3.0


def cache_preserve_global_tags() -> bool:
    cfg = load_config()
    return bool(_get(cfg, "cache", "preserve_global_tags", default=False))

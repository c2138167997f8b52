"""Environment, paths and portal configuration."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from internpilot.log import get_logger

log = get_logger(__name__)

load_dotenv()

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = PROJECT_ROOT / "config"
SELECTORS_PATH: Path = CONFIG_DIR / "selectors.yaml"
DATA_DIR: Path = Path(os.environ.get("AUTOPILOT_DATA_DIR", PROJECT_ROOT / "data"))
SESSIONS_DIR: Path = DATA_DIR / "sessions"
UPLOADS_DIR: Path = DATA_DIR / "uploads"

PORTAL_BASE_URL = "https://internshala.com"
LOGIN_URL = f"{PORTAL_BASE_URL}/login/user"
INTERNSHIPS_URL = f"{PORTAL_BASE_URL}/internships"
JOBS_URL = f"{PORTAL_BASE_URL}/jobs"

USER_AGENTS: list[str] = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
]
VIEWPORT: dict[str, int] = {"width": 1280, "height": 720}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def get_float_env(key: str, default: float) -> float:
    raw = get_env(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring non-numeric %s=%r, using %s", key, raw, default)
        return default


def headless_default() -> bool:
    return get_env("RUN_HEADLESS", "true").lower() in ("1", "true", "yes")


# Seconds.
APPLY_TIMEOUT: float = get_float_env("APPLY_TIMEOUT", 300.0)
RECOMMEND_TIMEOUT: float = get_float_env("RECOMMEND_TIMEOUT", 180.0)
MANUAL_LOGIN_TIMEOUT: float = get_float_env("MANUAL_LOGIN_TIMEOUT", 60.0)
AGGREGATE_TIMEOUT: float = get_float_env("AGGREGATE_TIMEOUT", 30.0)
PROVIDER_HTTP_TIMEOUT: float = get_float_env("PROVIDER_HTTP_TIMEOUT", 15.0)
CACHE_TTL: float = get_float_env("CACHE_TTL", 3600.0)


def load_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain a mapping at the top level")
    return data


def ensure_dirs() -> None:
    for d in (DATA_DIR, SESSIONS_DIR, UPLOADS_DIR):
        d.mkdir(parents=True, exist_ok=True)

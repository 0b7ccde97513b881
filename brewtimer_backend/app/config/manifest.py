# brewtimer_backend/app/config/manifest.py
from __future__ import annotations

import os
from typing import Dict, List

from .paths import resolve_rules_file

# ---- environment mode ----
APP_ENV: str = os.getenv("APP_ENV", "development")
DEBUG_MODE: bool = os.getenv("DEBUG", "0") not in ("", "0", "false", "False")
LOG_LEVEL: str = os.getenv("BREWTIMER_LOG_LEVEL", "INFO").upper()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default

def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default

def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip() not in ("", "0", "false", "False", "no", "off")


# ---- timer settings ----
COUNTDOWN_SECONDS: int = max(0, _env_int("BREWTIMER_COUNTDOWN_SECONDS", 3))
TICK_INTERVAL_S: float = _env_float("BREWTIMER_TICK_INTERVAL_S", 1.0)
if TICK_INTERVAL_S <= 0:
    TICK_INTERVAL_S = 1.0

# Defaults for the host session; callers can still override per controller.
SOUND_ENABLED: bool = _env_flag("BREWTIMER_SOUND_ENABLED", True)
HAPTICS_ENABLED: bool = _env_flag("BREWTIMER_HAPTICS_ENABLED", True)


# ---- rules manifest ----
RULES_REQUIRED: List[str] = []

RULES_OPTIONAL: List[str] = [
    "timer_rules.yaml",
]

def validate_manifest() -> Dict[str, object]:
    missing_required = [n for n in RULES_REQUIRED if not resolve_rules_file(n).exists()]
    missing_optional = [n for n in RULES_OPTIONAL if not resolve_rules_file(n).exists()]

    status = "ok" if not missing_required else "missing_required"
    return {
        "status": status,
        "required": RULES_REQUIRED,
        "optional": RULES_OPTIONAL,
        "missing_required": missing_required,
        "missing_optional": missing_optional,
    }


__all__ = [
    "APP_ENV", "DEBUG_MODE", "LOG_LEVEL",
    "COUNTDOWN_SECONDS", "TICK_INTERVAL_S", "SOUND_ENABLED", "HAPTICS_ENABLED",
    "validate_manifest",
]

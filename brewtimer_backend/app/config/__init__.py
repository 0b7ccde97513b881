# brewtimer_backend/app/config/__init__.py
from __future__ import annotations

# Re-export config surface expected by callers across the app.

# Env settings live in manifest.py
from .manifest import (
    APP_ENV,
    DEBUG_MODE,
    LOG_LEVEL,
    COUNTDOWN_SECONDS,
    TICK_INTERVAL_S,
    SOUND_ENABLED,
    HAPTICS_ENABLED,
    validate_manifest,
)

# Path helpers live in paths.py
from .paths import (
    RULES_DIR,
    resolve_rules_file,
)

__all__ = [
    # manifest
    "APP_ENV",
    "DEBUG_MODE",
    "LOG_LEVEL",
    "COUNTDOWN_SECONDS",
    "TICK_INTERVAL_S",
    "SOUND_ENABLED",
    "HAPTICS_ENABLED",
    "validate_manifest",
    # paths
    "RULES_DIR",
    "resolve_rules_file",
]

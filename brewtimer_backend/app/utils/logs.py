# brewtimer_backend/app/utils/logs.py
from __future__ import annotations

import logging

from brewtimer_backend.app.config.manifest import DEBUG_MODE, LOG_LEVEL


def level_for(level_name: str, debug: bool = False) -> int:
    """DEBUG wins over the configured level name; unknown names mean INFO."""
    if debug:
        return logging.DEBUG
    return getattr(logging, level_name.upper(), logging.INFO)

# What it does:
# Hand out "brewtimer.*" loggers with a stream handler attached once, so the
# core logs the same way whether it runs under uvicorn, pytest or a script.
def get_logger(name: str) -> logging.Logger:
    log = logging.getLogger(f"brewtimer.{name}")
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        log.addHandler(handler)
        log.setLevel(level_for(LOG_LEVEL, DEBUG_MODE))
    return log

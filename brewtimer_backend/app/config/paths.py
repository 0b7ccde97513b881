# brewtimer_backend/app/config/paths.py
"""
Where the bundled YAML rules live.

BREWTIMER_RULES_DIR points the app at another rules directory; otherwise
the package's own app/rules is used.
"""
from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

APP_ROOT: Path = Path(__file__).resolve().parents[1]

def _env_path(name: str) -> Optional[Path]:
    raw = (os.getenv(name) or "").strip().strip('"').strip("'")
    if not raw:
        return None
    return Path(raw).expanduser().resolve()

RULES_DIR: Path = (_env_path("BREWTIMER_RULES_DIR") or APP_ROOT / "rules").resolve()

def resolve_rules_file(name: str) -> Path:
    """Absolute path of a rules file under RULES_DIR."""
    return RULES_DIR / name

__all__ = ["APP_ROOT", "RULES_DIR", "resolve_rules_file"]

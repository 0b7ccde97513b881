# brewtimer_backend/app/services/brewing/rules_loader.py
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml  # PyYAML

from brewtimer_backend.app.config.paths import resolve_rules_file
from brewtimer_backend.app.utils.logs import get_logger

log = get_logger("rules")

RULES_FILE = "timer_rules.yaml"

# Purpose:
# Tunables shared by the migrator and the expander. Frozen so a cached
# instance can be handed to every caller.
@dataclass(frozen=True)
class TimerRules:
    espresso_markers: Tuple[str, ...] = ("espresso", "意式")
    default_extraction_seconds: float = 25.0
    missing_time_step_seconds: float = 30.0
    legacy_pour_divisor: int = 3
    wait_label: str = "Wait"
    extraction_label: str = "Extraction"
    source: Optional[str] = field(default=None, compare=False)


def _load_yaml_from(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e


def rules_from_mapping(data: Dict[str, Any], source: Optional[str] = None) -> TimerRules:
    """Build TimerRules from a parsed mapping; unknown keys are ignored."""
    base = TimerRules()
    markers = data.get("espresso_markers", base.espresso_markers)
    if isinstance(markers, str):
        markers = [markers]
    divisor = int(data.get("legacy_pour_divisor", base.legacy_pour_divisor) or base.legacy_pour_divisor)
    return TimerRules(
        espresso_markers=tuple(str(m).lower() for m in (markers or ()) if str(m).strip()),
        default_extraction_seconds=float(data.get("default_extraction_seconds", base.default_extraction_seconds)),
        missing_time_step_seconds=float(data.get("missing_time_step_seconds", base.missing_time_step_seconds)),
        legacy_pour_divisor=max(1, divisor),
        wait_label=str(data.get("wait_label", base.wait_label)),
        extraction_label=str(data.get("extraction_label", base.extraction_label)),
        source=source,
    )


def load_rules_file(path: Path) -> TimerRules:
    """
    Load rules from an explicit YAML path.
    Missing file -> built-in defaults (logged). Invalid YAML -> ValueError.
    """
    if not path.exists():
        log.warning("[rules] %s not found, using built-in defaults", path)
        return TimerRules()
    data = _load_yaml_from(path) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Rules file {path} must contain a mapping, got {type(data).__name__}")
    rules = rules_from_mapping(data, source=str(path))
    log.info("[rules] loaded %s from %s", RULES_FILE, path)
    return rules


@lru_cache(maxsize=1)
def load_timer_rules() -> TimerRules:
    return load_rules_file(resolve_rules_file(RULES_FILE))


__all__ = ["TimerRules", "RULES_FILE", "load_timer_rules", "load_rules_file", "rules_from_mapping"]

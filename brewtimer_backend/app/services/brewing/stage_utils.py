# brewtimer_backend/app/services/brewing/stage_utils.py
from __future__ import annotations

import re
from typing import Any, Iterable, List, Sequence

from brewtimer_backend.app.schemas import DeclarativeStage, LegacyStage, PourStyle

__all__ = [
    "parse_water", "format_time", "interpolate", "safe_rate",
    "calculate_cumulative_time", "calculate_cumulative_water",
    "calculate_total_duration", "calculate_total_water",
    "get_stage_start_time", "get_stage_end_time", "get_current_stage_index",
    "get_time_within_stage", "get_stage_progress",
    "legacy_total_duration", "legacy_total_water",
]

_LEADING_NUMBER = re.compile(r"^(\d+(?:\.\d+)?)")

# What it does:
# Pull the leading magnitude out of "30g", "30", "12.5 ml". Units are never
# used, so anything unparseable is simply 0.
def parse_water(water: Any) -> float:
    if water is None or isinstance(water, bool):
        return 0.0
    if isinstance(water, (int, float)):
        return float(water) if water > 0 else 0.0
    m = _LEADING_NUMBER.match(str(water).strip())
    return float(m.group(1)) if m else 0.0

def format_time(seconds: float) -> str:
    """75 -> "1:15". Negative input clamps to "0:00"."""
    total = max(0, int(seconds))
    return f"{total // 60}:{total % 60:02d}"


# ---- interpolation / flow helpers ----

def interpolate(start: float, end: float, fraction: float) -> float:
    """Linear blend between start and end; fraction is clamped to [0, 1]."""
    f = min(1.0, max(0.0, fraction))
    return start + (end - start) * f

def safe_rate(amount: float, duration: float) -> float:
    """amount / duration, 0 for non-positive durations (never NaN/inf)."""
    if duration <= 0:
        return 0.0
    return max(0.0, amount / duration)


# ---- canonical stage arithmetic ----
# These work on the migrated (canonical) stage list, before expansion.

def _as_canonical(stages: Iterable[Any]) -> List[DeclarativeStage]:
    out: List[DeclarativeStage] = []
    for s in stages or []:
        if isinstance(s, DeclarativeStage):
            out.append(s)
        elif isinstance(s, dict):
            out.append(DeclarativeStage.model_validate(s))
    return out

def _duration(stage: DeclarativeStage) -> float:
    # bypass/beverage have no duration
    return max(0.0, stage.duration or 0.0)

def calculate_cumulative_time(stages: Sequence[Any], up_to_index: int) -> float:
    """Sum of durations from the first stage through up_to_index (inclusive)."""
    items = _as_canonical(stages)
    if not items or up_to_index < 0:
        return 0.0
    end = min(up_to_index, len(items) - 1)
    return sum(_duration(s) for s in items[: end + 1])

def calculate_cumulative_water(stages: Sequence[Any], up_to_index: int) -> float:
    """Sum of water through up_to_index (inclusive); wait stages add nothing."""
    items = _as_canonical(stages)
    if not items or up_to_index < 0:
        return 0.0
    end = min(up_to_index, len(items) - 1)
    return sum(parse_water(s.water) for s in items[: end + 1] if not s.is_wait)

def calculate_total_duration(stages: Sequence[Any]) -> float:
    return sum(_duration(s) for s in _as_canonical(stages))

def calculate_total_water(stages: Sequence[Any]) -> float:
    return sum(parse_water(s.water) for s in _as_canonical(stages) if s.pour_style != PourStyle.WAIT.value)

def get_stage_start_time(stages: Sequence[Any], index: int) -> float:
    if index <= 0:
        return 0.0
    return calculate_cumulative_time(stages, index - 1)

def get_stage_end_time(stages: Sequence[Any], index: int) -> float:
    if index < 0:
        return 0.0
    return calculate_cumulative_time(stages, index)

def get_current_stage_index(stages: Sequence[Any], current_time: float) -> int:
    """
    Index of the stage whose cumulative end lies after current_time.
    Past the end of the recipe the last index is returned; an empty list gives 0.
    """
    items = _as_canonical(stages)
    if not items:
        return 0
    acc = 0.0
    for i, s in enumerate(items):
        acc += _duration(s)
        if current_time < acc:
            return i
    return len(items) - 1

def get_time_within_stage(stages: Sequence[Any], index: int, current_time: float) -> float:
    start = get_stage_start_time(stages, index)
    end = get_stage_end_time(stages, index)
    clamped = max(start, min(current_time, end))
    return clamped - start

def get_stage_progress(stages: Sequence[Any], index: int, current_time: float) -> float:
    """Fraction 0..1 of a canonical stage; zero-duration stages count as done."""
    items = _as_canonical(stages)
    if not items or index < 0 or index >= len(items):
        return 0.0
    duration = _duration(items[index])
    if duration == 0:
        return 1.0
    return min(1.0, get_time_within_stage(items, index, current_time) / duration)


# ---- legacy totals ----

def _as_legacy(stages: Iterable[Any]) -> List[LegacyStage]:
    out: List[LegacyStage] = []
    for s in stages or []:
        if isinstance(s, LegacyStage):
            out.append(s)
        elif isinstance(s, dict):
            out.append(LegacyStage.model_validate(s))
    return out

def legacy_total_duration(stages: Sequence[Any]) -> float:
    """Furthest cumulative time of a legacy list (0 when none carries a time)."""
    times = [s.time for s in _as_legacy(stages) if s.time is not None]
    return max([0.0, *times])

def legacy_total_water(stages: Sequence[Any]) -> float:
    """Legacy water is cumulative, so the total is the largest value seen."""
    return max((parse_water(s.water) for s in _as_legacy(stages)), default=0.0)

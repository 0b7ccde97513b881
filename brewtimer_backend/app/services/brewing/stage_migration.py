# brewtimer_backend/app/services/brewing/stage_migration.py

"""
Stage schema migration.

Legacy schema:    cumulative `time` + optional `pour_time`, cumulative `water`.
Canonical schema: per-stage `duration` + per-stage `water`, waiting is its own
                  `wait` stage, bypass/beverage carry no duration.

Exports:
    is_legacy_format(), migrate_stages(), to_legacy_format(), auto_migrate_stages(), parse_water()
"""

from __future__ import annotations
from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel

from brewtimer_backend.app.schemas import (
    INSTANT_STYLES,
    DeclarativeStage,
    LegacyStage,
    PourStyle,
    format_number,
)
from brewtimer_backend.app.services.brewing.rules_loader import TimerRules, load_timer_rules
from brewtimer_backend.app.services.brewing.stage_utils import parse_water
from brewtimer_backend.app.utils.logs import get_logger

__all__ = [
    "is_legacy_format", "migrate_stages", "to_legacy_format",
    "auto_migrate_stages", "parse_water", "coerce_stages",
]

log = get_logger("migration")

_DURATION_KEYS = ("duration", "durationSeconds", "duration_seconds")
_TIME_KEYS = ("time", "cumulativeTimeSeconds", "cumulative_time_seconds")

M = TypeVar("M", bound=BaseModel)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)

def _has_numeric(stage: Any, keys: Iterable[str]) -> bool:
    if isinstance(stage, Mapping):
        return any(_is_number(stage.get(k)) for k in keys)
    if isinstance(stage, BaseModel):
        return any(_is_number(getattr(stage, k, None)) for k in keys)
    return False

# Purpose:
# Legacy iff some stage has a cumulative time and no stage has a per-stage
# duration. Empty/ambiguous lists count as canonical so nothing gets migrated twice.
def is_legacy_format(stages: Any) -> bool:
    if not isinstance(stages, (list, tuple)) or not stages:
        return False
    has_time = False
    for stage in stages:
        if _has_numeric(stage, _DURATION_KEYS):
            return False
        if _has_numeric(stage, _TIME_KEYS):
            has_time = True
    return has_time


def _coerce(stage: Any, model: Type[M]) -> Optional[M]:
    if isinstance(stage, model):
        return stage
    if isinstance(stage, BaseModel):
        return model.model_validate(stage.model_dump())
    if isinstance(stage, Mapping):
        return model.model_validate(dict(stage))
    log.debug("[migration] skipping non-stage item %r", stage)
    return None

def coerce_stages(stages: Any, model: Type[M]) -> List[M]:
    """Validate raw stage items into `model`, dropping items that are not mappings/models."""
    if not isinstance(stages, (list, tuple)):
        return []
    out: List[M] = []
    for s in stages:
        m = _coerce(s, model)
        if m is not None:
            out.append(m)
    return out


def migrate_stages(legacy_stages: Any, rules: Optional[TimerRules] = None) -> List[DeclarativeStage]:
    """
    Convert legacy stages to canonical ones.

    - duration   = time[i] - time[i-1]  (>= 0; a missing time is previous + step)
    - water      = water[i] - water[i-1] (>= 0)
    - pour_time defaults to the whole window; any remainder becomes a `wait` stage
    - bypass/beverage are emitted without a duration, after a `wait` for their window
    """
    rules = rules or load_timer_rules()
    out: List[DeclarativeStage] = []
    prev_time = 0.0
    prev_water = 0.0

    items = coerce_stages(legacy_stages, LegacyStage)
    for legacy in items:
        current_time = legacy.time if legacy.time is not None else prev_time + rules.missing_time_step_seconds
        stage_duration = max(0.0, current_time - prev_time)

        current_water = parse_water(legacy.water)
        stage_water = max(0.0, current_water - prev_water)

        style = legacy.pour_style or PourStyle.CIRCLE.value
        instant = style in INSTANT_STYLES

        if instant:
            # the window before an instant addition is spent waiting
            if stage_duration > 0:
                out.append(DeclarativeStage(
                    pour_style=PourStyle.WAIT.value, label=rules.wait_label, duration=stage_duration))
            out.append(DeclarativeStage(
                pour_style=style,
                label=legacy.label,
                water=format_number(stage_water),
                detail=legacy.detail,
                valve_state=legacy.valve_state,
            ))
            prev_time = max(prev_time, current_time)
            prev_water = max(prev_water, current_water)
            continue

        if style == PourStyle.WAIT.value:
            # a legacy "wait" has nothing to pour; keep only its window
            pour_time = 0.0
        else:
            pour_time = legacy.pour_time if legacy.pour_time is not None else stage_duration
            # a pour never outruns its own window
            pour_time = min(max(0.0, pour_time), stage_duration)
        wait_time = max(0.0, stage_duration - pour_time)

        # A zero-length pour that still adds water is kept so totals survive.
        if style != PourStyle.WAIT.value and (pour_time > 0 or stage_water > 0):
            out.append(DeclarativeStage(
                pour_style=style,
                label=legacy.label,
                water=format_number(stage_water),
                detail=legacy.detail,
                duration=pour_time,
                valve_state=legacy.valve_state,
            ))

        if wait_time > 0:
            out.append(DeclarativeStage(
                pour_style=PourStyle.WAIT.value,
                label=rules.wait_label,
                duration=wait_time,
            ))

        # times and cumulative water only ever move forward
        prev_time = max(prev_time, current_time)
        prev_water = max(prev_water, current_water)

    log.debug("[migration] %d legacy stages -> %d canonical", len(items), len(out))
    return out


def to_legacy_format(stages: Any, rules: Optional[TimerRules] = None) -> List[LegacyStage]:
    """
    Export canonical stages in the legacy schema.

    Time and water are accumulated; a `wait` stage is folded into the pour before
    it (extending its cumulative time). A wait with no pour before it becomes a
    zero-pour stage tagged `other`. Labels of folded waits are lost; totals are kept.
    """
    rules = rules or load_timer_rules()
    out: List[LegacyStage] = []
    cumulative_time = 0.0
    cumulative_water = 0.0
    pending: Optional[DeclarativeStage] = None

    def _flush() -> None:
        nonlocal pending
        if pending is None:
            return
        out.append(LegacyStage(
            time=cumulative_time,
            pour_time=max(0.0, pending.duration or 0.0),
            label=pending.label,
            water=f"{format_number(cumulative_water)}g",
            detail=pending.detail,
            pour_style=pending.pour_style,
            valve_state=pending.valve_state,
        ))
        pending = None

    for stage in coerce_stages(stages, DeclarativeStage):
        duration = max(0.0, stage.duration or 0.0)

        if stage.is_wait:
            cumulative_time += duration
            if pending is None:
                out.append(LegacyStage(
                    time=cumulative_time,
                    pour_time=0,
                    label=stage.label or rules.wait_label,
                    water=f"{format_number(cumulative_water)}g",
                    detail=stage.detail,
                    pour_style=PourStyle.OTHER.value,
                ))
            continue

        _flush()
        cumulative_water += parse_water(stage.water)

        if stage.is_instant:
            out.append(LegacyStage(
                time=cumulative_time,
                label=stage.label,
                water=f"{format_number(cumulative_water)}g",
                detail=stage.detail,
                pour_style=stage.pour_style,
                valve_state=stage.valve_state,
            ))
        else:
            cumulative_time += duration
            pending = stage

    _flush()
    return out


def auto_migrate_stages(raw_stages: Any, rules: Optional[TimerRules] = None) -> List[DeclarativeStage]:
    """
    Canonical stages for any input. Legacy lists are migrated; canonical lists
    are only validated, so calling this twice gives the same result as once.
    """
    if not isinstance(raw_stages, (list, tuple)) or not raw_stages:
        return []
    if is_legacy_format(raw_stages):
        migrated = migrate_stages(raw_stages, rules)
        log.info("[migration] migrated legacy recipe (%d -> %d stages)", len(raw_stages), len(migrated))
        return migrated
    return coerce_stages(raw_stages, DeclarativeStage)

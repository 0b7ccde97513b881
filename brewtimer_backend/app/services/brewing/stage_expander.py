# brewtimer_backend/app/services/brewing/stage_expander.py
from __future__ import annotations

import math
from typing import Any, List, Optional, Tuple, Union

from brewtimer_backend.app.schemas import (
    BrewType,
    DeclarativeStage,
    LegacyStage,
    PourSegment,
    PourStyle,
    Recipe,
    Timeline,
    WaitSegment,
)
from brewtimer_backend.app.services.brewing.rules_loader import TimerRules, load_timer_rules
from brewtimer_backend.app.services.brewing.stage_migration import (
    auto_migrate_stages,
    coerce_stages,
    is_legacy_format,
)
from brewtimer_backend.app.services.brewing.stage_utils import parse_water
from brewtimer_backend.app.utils.logs import get_logger

__all__ = ["is_espresso_recipe", "expand_stages", "build_timeline"]

log = get_logger("expander")

Segment = Union[PourSegment, WaitSegment]
# (source index, canonical view, legacy view) of one raw stage
_View = Tuple[int, DeclarativeStage, LegacyStage]


# What it does:
# Read every raw item through both schemas once, so each branch can look at
# whichever fields it needs without "does this key exist" checks.
def _views(stages: Any) -> List[_View]:
    if not isinstance(stages, (list, tuple)):
        return []
    out: List[_View] = []
    for i, raw in enumerate(stages):
        canon = coerce_stages([raw], DeclarativeStage)
        legacy = coerce_stages([raw], LegacyStage)
        if canon and legacy:
            out.append((i, canon[0], legacy[0]))
    return out


def is_espresso_recipe(
    stages: Any,
    brew_type: Optional[BrewType] = None,
    rules: Optional[TimerRules] = None,
) -> bool:
    """
    Explicit brew_type wins. Without one, fall back to the old heuristic:
    an extraction/beverage stage, or an espresso marker in a label/detail.
    """
    if brew_type is not None:
        return BrewType(brew_type) == BrewType.ESPRESSO
    rules = rules or load_timer_rules()
    for _, stage, _legacy in _views(stages):
        if stage.pour_style in (PourStyle.EXTRACTION.value, PourStyle.BEVERAGE.value):
            return True
        text = f"{stage.label}\n{stage.detail}".lower()
        if any(marker in text for marker in rules.espresso_markers):
            return True
    return False


def _is_canonical_format(stages: Any, views: List[_View]) -> bool:
    if is_legacy_format(stages):
        return False
    return any(s.duration is not None or s.is_wait for _, s, _l in views)


# ---- branch 1: espresso ----

def _expand_espresso(views: List[_View], rules: TimerRules) -> List[Segment]:
    extraction = [v for v in views if v[1].pour_style == PourStyle.EXTRACTION.value]
    if not extraction and views:
        extraction = [views[0]]
    if len(extraction) > 1:
        log.warning("[expander] %d extraction stages; each starts at 0", len(extraction))

    segments: List[Segment] = []
    for index, stage, legacy in extraction:
        if stage.duration is not None:
            duration = stage.duration
        elif legacy.time is not None:
            duration = legacy.time
        else:
            duration = rules.default_extraction_seconds
        if duration <= 0:
            continue
        segments.append(PourSegment(
            label=stage.label or rules.extraction_label,
            detail=stage.detail,
            start_time=0.0,
            end_time=float(duration),
            cumulative_water_at_end=parse_water(stage.water),
            pour_style=PourStyle.EXTRACTION.value,
            valve_state=stage.valve_state,
            source_index=index,
        ))
    return segments


# ---- branch 2: canonical ----

def _expand_canonical(views: List[_View]) -> List[Segment]:
    segments: List[Segment] = []
    cumulative_time = 0.0
    cumulative_water = 0.0

    for index, stage, _legacy in views:
        if stage.pour_style == PourStyle.BYPASS.value:
            continue

        duration = max(0.0, stage.duration or 0.0)
        start = cumulative_time
        end = start + duration

        if stage.is_wait:
            if duration > 0:
                segments.append(WaitSegment(
                    label=stage.label,
                    detail=stage.detail,
                    start_time=start,
                    end_time=end,
                    cumulative_water_at_end=cumulative_water,
                    pour_style=stage.pour_style,
                    valve_state=stage.valve_state,
                    source_index=index,
                ))
        else:
            # water counts even when the segment itself is dropped
            cumulative_water += parse_water(stage.water)
            if duration > 0 or stage.is_instant:
                segments.append(PourSegment(
                    label=stage.label or f"Stage {index + 1}",
                    detail=stage.detail,
                    start_time=start,
                    end_time=end,
                    cumulative_water_at_end=cumulative_water,
                    pour_style=stage.pour_style,
                    valve_state=stage.valve_state,
                    source_index=index,
                ))

        cumulative_time = end

    return segments


# ---- branch 3: legacy ----

def _expand_legacy(views: List[_View], rules: TimerRules) -> List[Segment]:
    segments: List[Segment] = []
    cursor = 0.0
    cumulative_water = 0.0

    for index, _canon, stage in views:
        style = stage.pour_style or PourStyle.CIRCLE.value
        if style == PourStyle.BYPASS.value:
            continue

        start = cursor
        given = stage.time if stage.time is not None else start + rules.missing_time_step_seconds
        window_end = max(given, start)
        if stage.pour_time is not None:
            pour = min(max(0.0, stage.pour_time), window_end - start)
        else:
            pour = float(math.floor((window_end - start) / rules.legacy_pour_divisor))
        # legacy water is already cumulative; never let it run backwards
        cumulative_water = max(cumulative_water, parse_water(stage.water))
        label = stage.label or f"Stage {index + 1}"

        if pour > 0:
            pour_end = start + pour
            segments.append(PourSegment(
                label=label,
                detail=stage.detail,
                start_time=start,
                end_time=pour_end,
                cumulative_water_at_end=cumulative_water,
                pour_style=style,
                valve_state=stage.valve_state,
                source_index=index,
            ))
            if window_end > pour_end:
                segments.append(WaitSegment(
                    label=label,
                    detail=stage.detail,
                    start_time=pour_end,
                    end_time=window_end,
                    cumulative_water_at_end=cumulative_water,
                    pour_style=style,
                    valve_state=stage.valve_state,
                    source_index=index,
                ))
            cursor = window_end
        else:
            if window_end > start:
                segments.append(WaitSegment(
                    label=label,
                    detail=stage.detail,
                    start_time=start,
                    end_time=window_end,
                    cumulative_water_at_end=cumulative_water,
                    pour_style=style,
                    valve_state=stage.valve_state,
                    source_index=index,
                ))
            cursor = window_end

    return segments


def expand_stages(
    stages: Any,
    brew_type: Optional[BrewType] = None,
    rules: Optional[TimerRules] = None,
) -> Timeline:
    """
    Expand declarative stages into a flat Timeline.

    Branch order: espresso, canonical format, legacy format. Segments with a
    non-positive duration are dropped, except zero-length beverage pours.
    """
    rules = rules or load_timer_rules()
    views = _views(stages)
    if not views:
        return Timeline()

    if is_espresso_recipe(stages, brew_type, rules):
        segments = _expand_espresso(views, rules)
        branch = "espresso"
    elif _is_canonical_format(stages, views):
        segments = _expand_canonical(views)
        branch = "canonical"
    else:
        segments = _expand_legacy(views, rules)
        branch = "legacy"

    log.debug("[expander] %s branch: %d stages -> %d segments", branch, len(views), len(segments))
    return Timeline(segments=tuple(segments))


def build_timeline(recipe: Recipe, rules: Optional[TimerRules] = None) -> Timeline:
    """Recipe -> auto-migrated canonical stages -> Timeline."""
    stages = auto_migrate_stages(recipe.params.stages, rules)
    return expand_stages(stages, recipe.brew_type, rules)

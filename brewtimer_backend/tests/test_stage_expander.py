from __future__ import annotations
import random

import pytest

from brewtimer_backend.app.schemas import BrewType, PourSegment, Recipe, WaitSegment
from brewtimer_backend.app.services.brewing.stage_expander import (
    build_timeline,
    expand_stages,
    is_espresso_recipe,
)


def _shape(timeline):
    return [(s.kind, s.start_time, s.end_time, s.cumulative_water_at_end) for s in timeline.segments]


# ---------- canonical ----------

def test_canonical_wait_holds_water(rules):
    tl = expand_stages([
        {"duration": 10, "water": "50", "pourType": "pour"},
        {"duration": 20, "pourType": "wait"},
    ], rules=rules)

    assert _shape(tl) == [("pour", 0.0, 10.0, 50.0), ("wait", 10.0, 30.0, 50.0)]
    assert tl.total_duration == 30.0
    assert tl.total_water == 50.0

def test_canonical_segments_are_contiguous(canonical_recipe, rules):
    tl = build_timeline(canonical_recipe, rules)
    segs = tl.segments
    assert [s.label for s in segs] == ["Bloom", "Wait", "Main pour", "Drawdown"]
    for prev, cur in zip(segs, segs[1:]):
        assert cur.start_time == prev.end_time
    assert tl.total_duration == 80.0
    assert tl.total_water == 225.0
    assert [s.source_index for s in segs] == [0, 1, 2, 3]

def test_canonical_bypass_is_skipped(rules):
    tl = expand_stages([
        {"duration": 30, "water": "200"},
        {"water": "50", "pourType": "bypass"},
    ], rules=rules)
    assert len(tl.segments) == 1
    assert tl.total_water == 200.0

def test_canonical_zero_duration_is_dropped_but_water_counts(rules):
    tl = expand_stages([
        {"duration": 0, "water": "20"},
        {"duration": 10, "water": "30"},
    ], rules=rules)
    assert _shape(tl) == [("pour", 0.0, 10.0, 50.0)]

def test_canonical_beverage_is_zero_length_but_kept(rules):
    # explicit pour-over type keeps this out of the espresso branch
    tl = expand_stages(
        [{"duration": 20, "water": "200"}, {"water": "100", "pourType": "beverage", "label": "Milk"}],
        brew_type=BrewType.POUR_OVER,
        rules=rules,
    )
    assert _shape(tl) == [("pour", 0.0, 20.0, 200.0), ("pour", 20.0, 20.0, 300.0)]

def test_all_bypass_gives_empty_timeline(rules):
    tl = expand_stages([{"water": "50", "pourType": "bypass"}, {"water": "20", "pourType": "bypass"}], rules=rules)
    assert tl.is_empty
    assert tl.total_duration == 0.0

@pytest.mark.parametrize("stages", [None, [], "x", [1, 2, 3]])
def test_garbage_gives_empty_timeline(stages, rules):
    assert expand_stages(stages, rules=rules).is_empty


# ---------- legacy ----------

def test_legacy_first_stage_splits_pour_then_wait(rules):
    tl = expand_stages([{"time": 25, "pourTime": 10, "water": "30g"}], rules=rules)

    assert _shape(tl) == [("pour", 0.0, 10.0, 30.0), ("wait", 10.0, 25.0, 30.0)]
    assert isinstance(tl.segments[0], PourSegment)
    assert isinstance(tl.segments[1], WaitSegment)

def test_legacy_default_pour_is_a_third_of_the_window(rules):
    tl = expand_stages([{"time": 30, "water": "50g"}, {"time": 50, "water": "100g"}], rules=rules)
    # floor(30/3)=10 pour + 20 wait, then floor(20/3)=6 pour + 14 wait
    assert _shape(tl) == [
        ("pour", 0.0, 10.0, 50.0), ("wait", 10.0, 30.0, 50.0),
        ("pour", 30.0, 36.0, 100.0), ("wait", 36.0, 50.0, 100.0),
    ]

def test_legacy_zero_pour_is_one_wait(rules):
    tl = expand_stages([{"time": 20, "pourTime": 10, "water": "40g"}, {"time": 40, "pourTime": 0, "water": "40g"}],
                       rules=rules)
    assert _shape(tl)[-1] == ("wait", 20.0, 40.0, 40.0)

def test_legacy_water_never_decreases(rules):
    tl = expand_stages([{"time": 20, "pourTime": 5, "water": "100g"}, {"time": 40, "pourTime": 5, "water": "60g"}],
                       rules=rules)
    waters = [s.cumulative_water_at_end for s in tl.segments]
    assert waters == sorted(waters)

def test_legacy_long_pour_stays_inside_its_window(rules):
    tl = expand_stages([{"time": 10, "pourTime": 20, "water": "40g"}, {"time": 30, "pourTime": 5, "water": "80g"}],
                       rules=rules)
    assert _shape(tl) == [
        ("pour", 0.0, 10.0, 40.0),
        ("pour", 10.0, 15.0, 80.0), ("wait", 15.0, 30.0, 80.0),
    ]
    assert tl.total_duration == 30

def test_legacy_recipe_goes_through_migration(legacy_recipe, rules):
    tl = build_timeline(legacy_recipe, rules)
    assert _shape(tl) == [
        ("pour", 0.0, 10.0, 30.0), ("wait", 10.0, 25.0, 30.0),
        ("pour", 25.0, 45.0, 225.0), ("wait", 45.0, 60.0, 225.0),
    ]


# ---------- espresso ----------

def test_espresso_single_extraction_segment(espresso_recipe, rules):
    tl = build_timeline(espresso_recipe, rules)
    assert _shape(tl) == [("pour", 0.0, 25.0, 36.0)]
    assert tl.segments[0].pour_style == "extraction"

def test_espresso_detected_without_brew_type(rules):
    stages = [
        {"duration": 28, "water": "40g", "pourType": "extraction"},
        {"water": "150g", "pourType": "beverage"},
        {"water": "50g", "pourType": "beverage"},
    ]
    assert is_espresso_recipe(stages, rules=rules)
    tl = expand_stages(stages, rules=rules)
    assert len(tl.segments) == 1
    assert tl.total_duration == 28.0

def test_espresso_default_duration_and_first_stage_fallback(rules):
    tl = expand_stages([{"label": "Espresso shot", "water": "36g"}], rules=rules)
    assert _shape(tl) == [("pour", 0.0, rules.default_extraction_seconds, 36.0)]

def test_marker_matches_localised_text(rules):
    assert is_espresso_recipe([{"label": "意式浓缩", "duration": 25}], rules=rules)
    assert not is_espresso_recipe([{"label": "Bloom", "duration": 25}], rules=rules)

def test_brew_type_overrides_text_heuristic(rules):
    stages = [{"duration": 30, "water": "50", "label": "espresso-style bloom"}]
    assert not is_espresso_recipe(stages, BrewType.POUR_OVER, rules)
    assert is_espresso_recipe([{"duration": 30}], BrewType.ESPRESSO, rules)

def test_recipe_brew_type_alias_and_garbage():
    assert Recipe.model_validate({"brewType": "espresso"}).brew_type == BrewType.ESPRESSO
    assert Recipe.model_validate({"brew_type": "french press"}).brew_type is None


# ---------- monotonicity over generated recipes ----------

def _random_canonical(rng: random.Random):
    stages = []
    for _ in range(rng.randint(1, 8)):
        kind = rng.choice(["circle", "center", "wait", "bypass", "ice"])
        stage = {"pourType": kind}
        if kind != "bypass":
            stage["duration"] = rng.choice([0, 5, 10, 15, 30])
        if kind != "wait":
            stage["water"] = f"{rng.choice([0, 20, 50, 80])}g"
        stages.append(stage)
    return stages

@pytest.mark.parametrize("seed", range(30))
def test_timeline_is_ordered_and_monotonic(seed, rules):
    tl = expand_stages(_random_canonical(random.Random(seed)), rules=rules)
    segs = tl.segments
    for prev, cur in zip(segs, segs[1:]):
        assert cur.start_time == prev.end_time
        assert cur.cumulative_water_at_end >= prev.cumulative_water_at_end
    for s in segs:
        assert s.end_time > s.start_time

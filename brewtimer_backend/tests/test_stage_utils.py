import pytest

from brewtimer_backend.app.services.brewing.stage_utils import (
    calculate_cumulative_time,
    calculate_cumulative_water,
    calculate_total_duration,
    calculate_total_water,
    format_time,
    get_current_stage_index,
    get_stage_end_time,
    get_stage_progress,
    get_stage_start_time,
    get_time_within_stage,
    interpolate,
    legacy_total_duration,
    legacy_total_water,
    safe_rate,
)

STAGES = [
    {"duration": 10, "water": "30g"},
    {"duration": 20, "pourType": "wait"},
    {"water": "20g", "pourType": "bypass"},
    {"duration": 30, "water": "170g"},
]


@pytest.mark.parametrize("seconds, label", [(0, "0:00"), (5, "0:05"), (75, "1:15"), (600, "10:00"), (-4, "0:00"), (59.9, "0:59")])
def test_format_time(seconds, label):
    assert format_time(seconds) == label

def test_interpolate_clamps_fraction():
    assert interpolate(10, 20, 0.5) == 15
    assert interpolate(10, 20, -1) == 10
    assert interpolate(10, 20, 3) == 20

def test_safe_rate_never_divides_by_zero():
    assert safe_rate(30, 10) == 3.0
    assert safe_rate(30, 0) == 0.0
    assert safe_rate(30, -2) == 0.0

def test_cumulative_time_and_water():
    assert calculate_cumulative_time(STAGES, 0) == 10
    assert calculate_cumulative_time(STAGES, 2) == 30
    assert calculate_cumulative_time(STAGES, 99) == 60
    assert calculate_cumulative_time(STAGES, -1) == 0
    assert calculate_cumulative_water(STAGES, 1) == 30
    assert calculate_cumulative_water(STAGES, 2) == 50

def test_totals():
    assert calculate_total_duration(STAGES) == 60
    assert calculate_total_water(STAGES) == 220
    assert calculate_total_duration([]) == 0

def test_stage_window_helpers():
    assert get_stage_start_time(STAGES, 0) == 0
    assert get_stage_start_time(STAGES, 3) == 30
    assert get_stage_end_time(STAGES, 3) == 60
    assert get_time_within_stage(STAGES, 1, 15) == 5
    assert get_time_within_stage(STAGES, 1, 100) == 20

def test_current_stage_index():
    assert get_current_stage_index(STAGES, 0) == 0
    assert get_current_stage_index(STAGES, 10) == 1
    assert get_current_stage_index(STAGES, 30) == 3
    assert get_current_stage_index(STAGES, 500) == 3
    assert get_current_stage_index([], 5) == 0

def test_stage_progress_fraction():
    assert get_stage_progress(STAGES, 3, 45) == pytest.approx(0.5)
    assert get_stage_progress(STAGES, 2, 0) == 1.0   # instant stage
    assert get_stage_progress(STAGES, 7, 0) == 0.0

def test_legacy_totals():
    legacy = [{"time": 25, "water": "30g"}, {"time": 60, "water": "225g"}, {"water": "200g"}]
    assert legacy_total_duration(legacy) == 60
    assert legacy_total_water(legacy) == 225

def test_legacy_duration_is_furthest_time_reached():
    assert legacy_total_duration([{"time": 40}, {"time": 30}]) == 40
    assert legacy_total_duration([{"water": "10g"}]) == 0

from __future__ import annotations

import pytest

from brewtimer_backend.app.config import validate_manifest
from brewtimer_backend.app.services.brewing.rules_loader import (
    TimerRules,
    load_rules_file,
    load_timer_rules,
    rules_from_mapping,
)
from brewtimer_backend.app.services.brewing.stage_migration import migrate_stages


def test_bundled_rules_match_defaults():
    rules = load_timer_rules()
    assert rules == TimerRules()
    assert rules.source is not None and rules.source.endswith("timer_rules.yaml")

def test_missing_file_falls_back_to_defaults(tmp_path):
    assert load_rules_file(tmp_path / "absent.yaml") == TimerRules()

def test_invalid_yaml_raises(tmp_path):
    bad = tmp_path / "timer_rules.yaml"
    bad.write_text("espresso_markers: [unclosed\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_rules_file(bad)

def test_non_mapping_raises(tmp_path):
    bad = tmp_path / "timer_rules.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_rules_file(bad)

def test_custom_rules_flow_into_migration(tmp_path):
    path = tmp_path / "timer_rules.yaml"
    path.write_text("missing_time_step_seconds: 15\nwait_label: Rest\nespresso_markers: Ristretto\n", encoding="utf-8")
    rules = load_rules_file(path)
    assert rules.espresso_markers == ("ristretto",)

    out = migrate_stages([{"time": 10, "pourTime": 4, "water": "20g"}, {"water": "40g"}], rules)
    assert out[1].label == "Rest"
    assert out[2].duration == 15

def test_divisor_never_below_one():
    assert rules_from_mapping({"legacy_pour_divisor": 0}).legacy_pour_divisor == 3
    assert rules_from_mapping({"legacy_pour_divisor": -2}).legacy_pour_divisor == 1

def test_manifest_reports_rules_present():
    report = validate_manifest()
    assert report["status"] == "ok"
    assert report["missing_optional"] == []

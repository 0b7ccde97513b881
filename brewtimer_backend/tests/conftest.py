from __future__ import annotations
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from brewtimer_backend.app.main import app
from brewtimer_backend.app.schemas import CueKind, CueSettings, HapticKind, Recipe
from brewtimer_backend.app.services.brewing.rules_loader import TimerRules
from brewtimer_backend.app.services.timer import session
from brewtimer_backend.app.services.timer.controller import TimerController
from brewtimer_backend.app.services.timer.scheduler import ManualTickScheduler

# --- HTTP client ---
@pytest.fixture(scope="session")
def client():
    return TestClient(app)

# --- Session isolation: every test gets a fresh module-level brew ---
@pytest.fixture(autouse=True)
def reset_brew_session():
    session.reset_controller()
    yield
    session.reset_controller()

# --- Rules without touching the YAML on disk ---
@pytest.fixture
def rules():
    return TimerRules()

# --- Timer plumbing ---
class RecordingCues:
    """Cue dispatcher that remembers every call, in order."""

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []

    def play_cue(self, kind: CueKind) -> None:
        self.calls.append(("cue", CueKind(kind).value))

    def trigger_haptic(self, kind: HapticKind) -> None:
        self.calls.append(("haptic", HapticKind(kind).value))

    def cues(self) -> List[str]:
        return [k for t, k in self.calls if t == "cue"]

    def haptics(self) -> List[str]:
        return [k for t, k in self.calls if t == "haptic"]

@pytest.fixture
def scheduler():
    return ManualTickScheduler()

@pytest.fixture
def cues():
    return RecordingCues()

@pytest.fixture
def make_controller(scheduler, cues, rules):
    def _make(recipe=None, countdown_seconds=3, settings=None):
        return TimerController(
            scheduler,
            cues,
            recipe=recipe,
            settings=settings or CueSettings(),
            countdown_seconds=countdown_seconds,
            tick_interval_s=1.0,
            rules=rules,
        )
    return _make

# --- Sample recipes ---
@pytest.fixture
def canonical_recipe():
    # bloom 30s (pour 10 + wait 20), main pour 20s, drawdown 30s
    return Recipe.model_validate({
        "name": "V60 canonical",
        "params": {
            "coffee": "15g", "water": "225g", "ratio": "1:15", "grindSize": "medium", "temp": "92°C",
            "stages": [
                {"duration": 10, "label": "Bloom", "water": "30g", "pourType": "circle"},
                {"duration": 20, "label": "Wait", "pourType": "wait"},
                {"duration": 20, "label": "Main pour", "water": "195g", "pourType": "circle"},
                {"duration": 30, "label": "Drawdown", "pourType": "wait"},
            ],
        },
    })

@pytest.fixture
def legacy_recipe():
    return Recipe.model_validate({
        "name": "V60 legacy",
        "params": {
            "coffee": "15g", "water": "225g", "ratio": "1:15", "grindSize": "medium", "temp": "92°C",
            "stages": [
                {"time": 25, "pourTime": 10, "label": "Bloom", "water": "30g", "pourType": "circle"},
                {"time": 60, "pourTime": 20, "label": "Main pour", "water": "225g", "pourType": "circle"},
            ],
        },
    })

@pytest.fixture
def espresso_recipe():
    return Recipe.model_validate({
        "name": "Latte",
        "brewType": "espresso",
        "params": {
            "coffee": "18g", "water": "36g", "ratio": "1:2",
            "stages": [
                {"duration": 25, "label": "Shot", "water": "36g", "pourType": "extraction"},
                {"label": "Milk", "water": "180g", "pourType": "beverage"},
                {"label": "Water", "water": "60g", "pourType": "beverage"},
            ],
        },
    })

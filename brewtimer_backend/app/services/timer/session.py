# brewtimer_backend/app/services/timer/session.py
from __future__ import annotations

from typing import Any, Dict, Optional

from brewtimer_backend.app.config.manifest import HAPTICS_ENABLED, SOUND_ENABLED
from brewtimer_backend.app.schemas import CueSettings
from brewtimer_backend.app.services.brewing.stage_utils import format_time
from brewtimer_backend.app.services.timer.controller import TimerController
from brewtimer_backend.app.services.timer.cues import LoggingCueDispatcher
from brewtimer_backend.app.services.timer.scheduler import AsyncioTickScheduler
from brewtimer_backend.app.utils.logs import get_logger

__all__ = ["get_controller", "reset_controller", "default_settings", "describe"]

log = get_logger("session")

# One brew at a time per process.
_CONTROLLER: Optional[TimerController] = None


def default_settings() -> CueSettings:
    # no haptic motor on a server; the flag is still honoured for log output
    return CueSettings(sound_enabled=SOUND_ENABLED, haptics_enabled=HAPTICS_ENABLED, haptics_supported=True)


def get_controller() -> TimerController:
    global _CONTROLLER
    if _CONTROLLER is None:
        _CONTROLLER = TimerController(
            AsyncioTickScheduler(),
            LoggingCueDispatcher(),
            settings=default_settings(),
        )
        log.info("[session] created brew session")
    return _CONTROLLER


def reset_controller() -> None:
    """Drop the session (stops its tick first). Used by tests and on shutdown."""
    global _CONTROLLER
    if _CONTROLLER is not None:
        _CONTROLLER.reset()
    _CONTROLLER = None


def describe(controller: TimerController) -> Dict[str, Any]:
    snap = controller.snapshot
    timeline = controller.timeline
    return {
        "state": controller.state.value,
        "is_running": controller.is_running,
        "recipe": controller.recipe.name if controller.recipe is not None else None,
        "elapsed_time": controller.elapsed_time,
        "elapsed_label": format_time(controller.elapsed_time),
        "countdown": controller.countdown_remaining,
        "can_skip": controller.can_skip,
        "total_duration": timeline.total_duration,
        "total_water": timeline.total_water,
        "snapshot": snap.model_dump(mode="json"),
    }

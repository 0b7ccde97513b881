# brewtimer_backend/app/services/timer/controller.py

"""
Brew timer state machine.

    IDLE -> COUNTDOWN -> RUNNING <-> PAUSED
                         RUNNING -> COMPLETED
    any state -> IDLE via reset()

One tick source at a time: every countdown/main loop is armed through _arm(),
which cancels the previous handle before scheduling the new one.
"""

from __future__ import annotations
from typing import Any, Optional, Union

from brewtimer_backend.app.config.manifest import COUNTDOWN_SECONDS, TICK_INTERVAL_S
from brewtimer_backend.app.schemas import (
    CompletedEvent,
    CountdownEvent,
    CueKind,
    CueSettings,
    HapticKind,
    Recipe,
    StageChangedEvent,
    StatusEvent,
    Timeline,
    TimerSnapshot,
    TimerState,
    WaitSegment,
)
from brewtimer_backend.app.services.brewing import timeline_query as Q
from brewtimer_backend.app.services.brewing.rules_loader import TimerRules
from brewtimer_backend.app.services.brewing.stage_expander import build_timeline
from brewtimer_backend.app.services.brewing.stage_utils import format_time
from brewtimer_backend.app.services.timer.channels import EventChannel
from brewtimer_backend.app.services.timer.cues import CueDispatcher, CueGate
from brewtimer_backend.app.services.timer.scheduler import TickCallback, TickHandle, TickScheduler
from brewtimer_backend.app.utils.logs import get_logger

__all__ = ["TimerController"]

log = get_logger("timer")


class TimerController:
    def __init__(
        self,
        scheduler: TickScheduler,
        cues: Optional[CueDispatcher] = None,
        *,
        recipe: Optional[Union[Recipe, dict]] = None,
        settings: Optional[CueSettings] = None,
        countdown_seconds: Optional[int] = None,
        tick_interval_s: Optional[float] = None,
        rules: Optional[TimerRules] = None,
    ):
        self._scheduler = scheduler
        self._cues = CueGate(cues, settings)
        self._rules = rules
        self.countdown_seconds = COUNTDOWN_SECONDS if countdown_seconds is None else max(0, int(countdown_seconds))
        self.tick_interval_s = TICK_INTERVAL_S if tick_interval_s is None else float(tick_interval_s)

        # ---- outputs ----
        self.on_snapshot: EventChannel[TimerSnapshot] = EventChannel("snapshot")
        self.on_stage_change: EventChannel[StageChangedEvent] = EventChannel("stage_change")
        self.on_countdown: EventChannel[CountdownEvent] = EventChannel("countdown")
        self.on_complete: EventChannel[CompletedEvent] = EventChannel("complete")
        self.on_status: EventChannel[StatusEvent] = EventChannel("status")
        self.on_timeline: EventChannel[Timeline] = EventChannel("timeline")

        # ---- owned state ----
        self._state = TimerState.IDLE
        self._recipe: Optional[Recipe] = None
        self._timeline = Timeline()
        self._elapsed = 0.0
        self._countdown_remaining: Optional[int] = None
        self._last_index = Q.NO_SEGMENT
        self._snapshot = Q.snapshot(self._timeline, 0.0)
        self._tick: Optional[TickHandle] = None

        if recipe is not None:
            self.load_recipe(recipe)

    # ===================== read-only views =====================

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == TimerState.RUNNING

    @property
    def elapsed_time(self) -> float:
        return self._elapsed

    @property
    def timeline(self) -> Timeline:
        return self._timeline

    @property
    def recipe(self) -> Optional[Recipe]:
        return self._recipe

    @property
    def countdown_remaining(self) -> Optional[int]:
        return self._countdown_remaining

    @property
    def snapshot(self) -> TimerSnapshot:
        return self._snapshot

    @property
    def has_active_tick(self) -> bool:
        return self._tick is not None and self._tick.active

    @property
    def settings(self) -> CueSettings:
        return self._cues.settings

    @property
    def can_skip(self) -> bool:
        if self._timeline.is_empty:
            return False
        if self._state == TimerState.PAUSED:
            return self._elapsed > 0
        if self._state == TimerState.RUNNING:
            segs = self._timeline.segments
            index = Q.active_segment_index(segs, self._elapsed)
            return index == len(segs) - 1 and isinstance(segs[index], WaitSegment)
        return False

    # ===================== commands =====================

    def load_recipe(self, recipe: Union[Recipe, dict, Any]) -> bool:
        """Swap the recipe and rebuild the Timeline. Refused mid-brew."""
        if self._state in (TimerState.COUNTDOWN, TimerState.RUNNING):
            log.info("[timer] load_recipe refused while %s", self._state.value)
            return False
        self._recipe = recipe if isinstance(recipe, Recipe) else Recipe.model_validate(recipe or {})
        self._reset_state()
        log.info(
            "[timer] loaded %r: %d segments, %s total",
            self._recipe.name, len(self._timeline.segments), format_time(self._timeline.total_duration),
        )
        return True

    def update_settings(self, settings: CueSettings) -> None:
        self._cues.update(settings)

    def start(self) -> bool:
        if self._state in (TimerState.COUNTDOWN, TimerState.RUNNING):
            return False
        if self._timeline.is_empty:
            log.info("[timer] start ignored: empty timeline")
            return False

        if self._state == TimerState.COMPLETED:
            self._reset_state()
        elif self._state == TimerState.PAUSED and self._elapsed > 0:
            log.info("[timer] resume at %s", format_time(self._elapsed))
            self._enter_running()
            return True

        if self.countdown_seconds <= 0:
            self._finish_countdown()
            return True

        self._countdown_remaining = self.countdown_seconds
        self._set_state(TimerState.COUNTDOWN)
        self.on_countdown.emit(CountdownEvent(remaining=self._countdown_remaining))
        self._cues.play(CueKind.START)
        self._cues.haptic(HapticKind.MEDIUM)
        self._arm(self._countdown_tick)
        return True

    def pause(self) -> bool:
        if self._state != TimerState.RUNNING:
            return False
        self._disarm()
        self._set_state(TimerState.PAUSED)
        self._cues.haptic(HapticKind.LIGHT)
        log.info("[timer] paused at %s", format_time(self._elapsed))
        return True

    def reset(self) -> None:
        self._reset_state(force_status=True)
        self._cues.haptic(HapticKind.WARNING)
        log.info("[timer] reset")

    def skip(self) -> bool:
        """Finish now: jump to the end and complete exactly like a natural finish."""
        if not self.can_skip:
            return False
        self._disarm()
        self._elapsed = self._timeline.total_duration
        self._publish()
        self._complete()
        return True

    # ===================== tick plumbing =====================

    def _arm(self, callback: TickCallback) -> None:
        if self._tick is not None:
            self._tick.cancel()
        self._tick = self._scheduler.call_every(self.tick_interval_s, callback)

    def _disarm(self) -> None:
        if self._tick is not None:
            self._tick.cancel()
            self._tick = None

    def _countdown_tick(self, dt: float) -> None:
        if self._state != TimerState.COUNTDOWN or self._countdown_remaining is None:
            self._disarm()
            return
        self._countdown_remaining -= 1
        if self._countdown_remaining > 0:
            self.on_countdown.emit(CountdownEvent(remaining=self._countdown_remaining))
            self._cues.play(CueKind.START)
            self._cues.haptic(HapticKind.MEDIUM)
            return
        self._finish_countdown()

    def _finish_countdown(self) -> None:
        self._disarm()
        self._countdown_remaining = None
        self.on_countdown.emit(CountdownEvent(remaining=None))
        self._cues.play(CueKind.READY)
        self._cues.haptic(HapticKind.MEDIUM)

        self._rebuild_timeline()
        if self._timeline.is_empty:
            self._set_state(TimerState.IDLE)
            return
        self._elapsed = 0.0
        self._last_index = Q.NO_SEGMENT
        self._enter_running()

    def _enter_running(self) -> None:
        self._set_state(TimerState.RUNNING)
        self._publish()
        if self._elapsed >= self._timeline.total_duration:
            self._complete()
            return
        self._arm(self._main_tick)

    def _main_tick(self, dt: float) -> None:
        if self._state != TimerState.RUNNING:
            self._disarm()
            return
        total = self._timeline.total_duration
        self._elapsed = min(self._elapsed + max(0.0, dt), total)
        self._publish()
        if self._elapsed >= total:
            self._complete()

    def _publish(self) -> None:
        snap = Q.snapshot(self._timeline, self._elapsed)
        self._snapshot = snap
        index = snap.active_segment_index
        if index != self._last_index:
            if self._last_index != Q.NO_SEGMENT and index != Q.NO_SEGMENT:
                self._cues.play(CueKind.TICK)
                self._cues.haptic(HapticKind.MEDIUM)
            self._last_index = index
            self.on_stage_change.emit(StageChangedEvent(
                index=index, is_waiting=snap.is_waiting, progress=snap.segment_progress,
            ))
            log.debug("[timer] segment %d at %s", index, format_time(self._elapsed))
        self.on_snapshot.emit(snap)

    def _complete(self) -> None:
        self._disarm()
        self._elapsed = self._timeline.total_duration
        self._set_state(TimerState.COMPLETED)
        self._cues.play(CueKind.COMPLETE)
        self._cues.haptic(HapticKind.SUCCESS)
        self.on_complete.emit(CompletedEvent(total_time=self._elapsed))
        log.info("[timer] completed in %s", format_time(self._elapsed))

    # ===================== state helpers =====================

    def _rebuild_timeline(self) -> None:
        if self._recipe is None:
            self._timeline = Timeline()
        else:
            self._timeline = build_timeline(self._recipe, self._rules)
        self.on_timeline.emit(self._timeline)

    def _reset_state(self, force_status: bool = False) -> None:
        self._disarm()
        self._elapsed = 0.0
        self._countdown_remaining = None
        self._last_index = Q.NO_SEGMENT
        self._rebuild_timeline()
        self._snapshot = Q.snapshot(self._timeline, 0.0)
        self.on_countdown.emit(CountdownEvent(remaining=None))
        self._set_state(TimerState.IDLE, force=force_status)
        self.on_snapshot.emit(self._snapshot)

    def _set_state(self, state: TimerState, force: bool = False) -> None:
        if state == self._state and not force:
            return
        self._state = state
        self.on_status.emit(StatusEvent(state=state, is_running=state == TimerState.RUNNING))

# brewtimer_backend/app/services/timer/cues.py
from __future__ import annotations

from typing import Optional, Protocol

from brewtimer_backend.app.schemas import CueKind, CueSettings, HapticKind
from brewtimer_backend.app.utils.logs import get_logger

__all__ = ["CueDispatcher", "NullCueDispatcher", "LoggingCueDispatcher", "CueGate"]

log = get_logger("cues")


class CueDispatcher(Protocol):
    """Audio/haptic sink owned by the host. Calls must return promptly."""

    def play_cue(self, kind: CueKind) -> None: ...

    def trigger_haptic(self, kind: HapticKind) -> None: ...


class NullCueDispatcher:
    def play_cue(self, kind: CueKind) -> None:
        return None

    def trigger_haptic(self, kind: HapticKind) -> None:
        return None


class LoggingCueDispatcher:
    """Server-side stand-in: there is no speaker, so cues become log lines."""

    def play_cue(self, kind: CueKind) -> None:
        log.info("[cue] sound=%s", CueKind(kind).value)

    def trigger_haptic(self, kind: HapticKind) -> None:
        log.info("[cue] haptic=%s", HapticKind(kind).value)


# Purpose:
# Settings decide whether a dispatcher is called at all; dispatcher failures are
# logged and dropped here so a broken speaker never stops the tick loop.
class CueGate:
    def __init__(self, dispatcher: Optional[CueDispatcher] = None, settings: Optional[CueSettings] = None):
        self.dispatcher: CueDispatcher = dispatcher or NullCueDispatcher()
        self.settings = settings or CueSettings()

    def update(self, settings: CueSettings) -> None:
        self.settings = settings

    def play(self, kind: CueKind) -> None:
        if not self.settings.sound_enabled:
            return
        try:
            self.dispatcher.play_cue(kind)
        except Exception:
            log.warning("[cue] play_cue(%s) failed", kind, exc_info=True)

    def haptic(self, kind: HapticKind) -> None:
        if not (self.settings.haptics_enabled and self.settings.haptics_supported):
            return
        try:
            self.dispatcher.trigger_haptic(kind)
        except Exception:
            log.warning("[cue] trigger_haptic(%s) failed", kind, exc_info=True)

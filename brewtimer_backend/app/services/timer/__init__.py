# brewtimer_backend/app/services/timer/__init__.py
from .channels import EventChannel
from .controller import TimerController
from .cues import CueDispatcher, CueGate, LoggingCueDispatcher, NullCueDispatcher
from .scheduler import AsyncioTickScheduler, ManualTickScheduler, TickHandle, TickScheduler

__all__ = [
    "EventChannel",
    "TimerController",
    "CueDispatcher", "CueGate", "LoggingCueDispatcher", "NullCueDispatcher",
    "AsyncioTickScheduler", "ManualTickScheduler", "TickHandle", "TickScheduler",
]

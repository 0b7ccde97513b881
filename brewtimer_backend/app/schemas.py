# schemas.py  (recipe stages, expanded timeline, timer snapshots/events)

from __future__ import annotations
import math
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ===================== Enums =====================

class PourStyle(str, Enum):
    CENTER = "center"
    CIRCLE = "circle"
    ICE = "ice"
    BYPASS = "bypass"            # instantaneous addition, no duration
    WAIT = "wait"                # canonical schema only
    EXTRACTION = "extraction"    # espresso shot
    BEVERAGE = "beverage"        # espresso drink addition (milk, water)
    OTHER = "other"

class ValveState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"

class BrewType(str, Enum):
    POUR_OVER = "pour_over"
    ESPRESSO = "espresso"

class TimerState(str, Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"

class CueKind(str, Enum):
    START = "start"
    TICK = "tick"
    READY = "ready"
    COMPLETE = "complete"

class HapticKind(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    SUCCESS = "success"
    WARNING = "warning"

# Pour styles that carry no duration of their own.
INSTANT_STYLES = frozenset({PourStyle.BYPASS.value, PourStyle.BEVERAGE.value})


# ===================== Coercion helpers =====================
# Recipes come from old exports, hand-edited JSON and AI output; bad fields
# degrade to None/"" instead of failing validation.

def _coerce_number(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        f = float(v)
    elif isinstance(v, str):
        try:
            f = float(v.strip())
        except ValueError:
            return None
    else:
        return None
    return f if math.isfinite(f) else None

def format_number(x: float) -> str:
    """30.0 -> "30", 12.5 -> "12.5"."""
    f = float(x)
    if f.is_integer():
        return str(int(f))
    return f"{f:.3f}".rstrip("0").rstrip(".")

def _coerce_water(v: Any) -> Optional[str]:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return format_number(v) if math.isfinite(float(v)) else None
    return str(v)

def _coerce_text(v: Any) -> str:
    if v is None:
        return ""
    return v if isinstance(v, str) else str(v)

def _coerce_style(v: Any) -> str:
    if isinstance(v, Enum):
        v = v.value
    s = _coerce_text(v).strip().lower()
    return s or PourStyle.CIRCLE.value

def _coerce_valve(v: Any) -> Optional[str]:
    if isinstance(v, Enum):
        v = v.value
    if isinstance(v, str) and v.strip().lower() in ("open", "closed"):
        return v.strip().lower()
    return None


# ===================== Declarative stages =====================

class DeclarativeStage(BaseModel):
    """
    Canonical author-facing stage: per-segment duration and per-segment water.
    `wait` is its own pour style; bypass/beverage carry no duration.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    duration: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("duration", "durationSeconds", "duration_seconds"))
    label: str = ""
    water: Optional[str] = None                 # e.g. "30g"; this stage's contribution
    detail: str = ""
    pour_style: str = Field(
        default=PourStyle.CIRCLE.value,
        validation_alias=AliasChoices("pour_style", "pourStyle", "pourType", "pour_type"))
    valve_state: Optional[ValveState] = Field(
        default=None, validation_alias=AliasChoices("valve_state", "valveState", "valveStatus"))

    @field_validator("duration", mode="before")
    @classmethod
    def _duration(cls, v: Any) -> Optional[float]:
        return _coerce_number(v)

    @field_validator("water", mode="before")
    @classmethod
    def _water(cls, v: Any) -> Optional[str]:
        return _coerce_water(v)

    @field_validator("label", "detail", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _coerce_text(v)

    @field_validator("pour_style", mode="before")
    @classmethod
    def _style(cls, v: Any) -> str:
        return _coerce_style(v)

    @field_validator("valve_state", mode="before")
    @classmethod
    def _valve(cls, v: Any) -> Optional[str]:
        return _coerce_valve(v)

    @property
    def is_wait(self) -> bool:
        return self.pour_style == PourStyle.WAIT.value

    @property
    def is_instant(self) -> bool:
        return self.pour_style in INSTANT_STYLES


class LegacyStage(BaseModel):
    """
    Historical stage: `time` is cumulative since recipe start, `water` is the
    cumulative target, and `pour_time` (optional) is how long of the window is spent pouring.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    time: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("time", "cumulativeTimeSeconds", "cumulative_time_seconds"))
    pour_time: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("pour_time", "pourTime", "pourDurationSeconds", "pour_duration_seconds"))
    label: str = ""
    water: Optional[str] = None                 # cumulative, e.g. "225g"
    detail: str = ""
    pour_style: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("pour_style", "pourStyle", "pourType", "pour_type"))
    valve_state: Optional[ValveState] = Field(
        default=None, validation_alias=AliasChoices("valve_state", "valveState", "valveStatus"))

    @field_validator("time", "pour_time", mode="before")
    @classmethod
    def _numbers(cls, v: Any) -> Optional[float]:
        return _coerce_number(v)

    @field_validator("water", mode="before")
    @classmethod
    def _water(cls, v: Any) -> Optional[str]:
        return _coerce_water(v)

    @field_validator("label", "detail", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _coerce_text(v)

    @field_validator("valve_state", mode="before")
    @classmethod
    def _valve(cls, v: Any) -> Optional[str]:
        return _coerce_valve(v)

    @field_validator("pour_style", mode="before")
    @classmethod
    def _legacy_style(cls, v: Any) -> Optional[str]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return _coerce_style(v)


# ===================== Recipe =====================

class RecipeParams(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    coffee: str = ""            # "15g"
    water: str = ""             # "225g"
    ratio: str = ""             # "1:15"
    grind_size: str = Field(default="", validation_alias=AliasChoices("grind_size", "grindSize"))
    temp: str = ""              # "92°C"
    # Raw stages: legacy or canonical, dicts or stage models. Migrated on use.
    stages: List[Any] = Field(default_factory=list)

    @field_validator("coffee", "water", "ratio", "grind_size", "temp", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _coerce_text(v)

    @field_validator("stages", mode="before")
    @classmethod
    def _stages_list(cls, v: Any) -> List[Any]:
        if isinstance(v, (list, tuple)):
            return list(v)
        return []

class Recipe(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    params: RecipeParams = Field(default_factory=RecipeParams)
    # Explicit type wins over the label/detail heuristic when present.
    brew_type: Optional[BrewType] = Field(
        default=None, validation_alias=AliasChoices("brew_type", "brewType"))

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v: Any) -> str:
        return _coerce_text(v)

    @field_validator("brew_type", mode="before")
    @classmethod
    def _brew_type(cls, v: Any) -> Optional[str]:
        if isinstance(v, Enum):
            v = v.value
        if isinstance(v, str) and v.strip().lower() in ("pour_over", "espresso"):
            return v.strip().lower()
        return None

    @field_validator("params", mode="before")
    @classmethod
    def _params(cls, v: Any) -> Any:
        return v if v is not None else {}


# ===================== Timeline =====================

class _SegmentBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    detail: str = ""
    start_time: float
    end_time: float
    cumulative_water_at_end: float
    pour_style: str
    valve_state: Optional[ValveState] = None
    source_index: int                           # index into the (migrated) stage list

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

class PourSegment(_SegmentBase):
    kind: Literal["pour"] = "pour"

class WaitSegment(_SegmentBase):
    kind: Literal["wait"] = "wait"

TimelineSegment = Annotated[Union[PourSegment, WaitSegment], Field(discriminator="kind")]

class Timeline(BaseModel):
    """Flat, absolute-time segment list. Rebuilt on recipe change, never mutated."""
    model_config = ConfigDict(frozen=True)

    segments: Tuple[TimelineSegment, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.segments

    @property
    def last(self) -> Optional[Union[PourSegment, WaitSegment]]:
        return self.segments[-1] if self.segments else None

    @property
    def total_duration(self) -> float:
        return self.segments[-1].end_time if self.segments else 0.0

    @property
    def total_water(self) -> float:
        return self.segments[-1].cumulative_water_at_end if self.segments else 0.0


# ===================== Timer output =====================

class TimerSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    elapsed_time: float
    active_segment_index: int                   # -1 when nothing is active
    segment_progress: float                     # fraction 0..1
    cumulative_water: float
    flow_rate: float                            # g/s target for the active pour
    is_waiting: bool = False

class StageChangedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    is_waiting: bool
    progress: float = 0.0

class CountdownEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    remaining: Optional[int] = None             # None once the countdown is inactive

class CompletedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_time: float

class StatusEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: TimerState
    is_running: bool


# ===================== Settings =====================

class CueSettings(BaseModel):
    """Read-only settings that gate cue calls."""
    sound_enabled: bool = True
    haptics_enabled: bool = True
    haptics_supported: bool = True


# ===================== API payloads =====================

class StagesIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    stages: List[Any] = Field(default_factory=list)

class SnapshotRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    recipe: Recipe
    elapsed_time: float = Field(default=0.0, ge=0)

class SessionLoadRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    recipe: Recipe
    settings: Optional[CueSettings] = None

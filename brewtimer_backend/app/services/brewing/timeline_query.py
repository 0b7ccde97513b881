# brewtimer_backend/app/services/brewing/timeline_query.py

"""
Pure queries over an expanded Timeline at an elapsed time t.

Boundaries are half-open [start, end); the final segment is closed so the
brew is still "in" its last segment at exactly total_duration.
"""

from __future__ import annotations
from typing import Optional, Sequence, Union

from brewtimer_backend.app.schemas import PourSegment, Timeline, TimerSnapshot, WaitSegment
from brewtimer_backend.app.services.brewing.stage_utils import interpolate, safe_rate

__all__ = [
    "NO_SEGMENT",
    "active_segment_index",
    "segment_progress",
    "previous_water",
    "cumulative_water",
    "target_flow_rate",
    "snapshot",
]

NO_SEGMENT = -1

Segment = Union[PourSegment, WaitSegment]
TimelineLike = Union[Timeline, Sequence[Segment]]


def _segments(timeline: TimelineLike) -> Sequence[Segment]:
    if isinstance(timeline, Timeline):
        return timeline.segments
    return timeline or ()


def active_segment_index(timeline: TimelineLike, t: float) -> int:
    segs = _segments(timeline)
    if not segs:
        return NO_SEGMENT
    last = len(segs) - 1
    for i, seg in enumerate(segs):
        if i == last:
            if seg.start_time <= t <= seg.end_time:
                return i
        elif seg.start_time <= t < seg.end_time:
            return i
    # past the end: the brew stays on its final segment
    return last if t > 0 else NO_SEGMENT


def segment_progress(timeline: TimelineLike, index: int, t: float) -> float:
    """Percent 0..100 of segment `index` at t. Zero-length segments are 100 once reached."""
    segs = _segments(timeline)
    if index < 0 or index >= len(segs):
        return 0.0
    seg = segs[index]
    if t < seg.start_time:
        return 0.0
    if t >= seg.end_time:
        return 100.0
    return (t - seg.start_time) / (seg.end_time - seg.start_time) * 100.0


def previous_water(timeline: TimelineLike, index: int) -> float:
    """Cumulative water at the start of segment `index` (0 for the first)."""
    segs = _segments(timeline)
    if index <= 0 or not segs:
        return 0.0
    return segs[min(index, len(segs)) - 1].cumulative_water_at_end


def cumulative_water(timeline: TimelineLike, t: float, active_index: Optional[int] = None) -> float:
    segs = _segments(timeline)
    if not segs or t <= 0:
        return 0.0
    if active_index is None:
        active_index = active_segment_index(segs, t)
    if active_index == NO_SEGMENT or active_index >= len(segs):
        return segs[-1].cumulative_water_at_end

    seg = segs[active_index]
    if isinstance(seg, WaitSegment):
        return seg.cumulative_water_at_end
    if isinstance(seg, PourSegment):
        if seg.duration <= 0 or t - seg.start_time >= seg.duration:
            return seg.cumulative_water_at_end
        start_water = previous_water(segs, active_index)
        fraction = (t - seg.start_time) / seg.duration
        return interpolate(start_water, seg.cumulative_water_at_end, fraction)
    raise TypeError(f"unknown segment kind: {type(seg).__name__}")


def target_flow_rate(
    segment: Optional[Segment],
    timeline: TimelineLike,
    index: Optional[int] = None,
) -> float:
    """
    Grams per second the pour is aiming for; 0 for waits and zero-length pours.
    Pass `index` when the caller already knows where the segment sits; a pour
    that is not part of the timeline has no rate.
    """
    if segment is None:
        return 0.0
    if isinstance(segment, WaitSegment):
        return 0.0
    if isinstance(segment, PourSegment):
        segs = _segments(timeline)
        if index is None:
            try:
                index = list(segs).index(segment)
            except ValueError:
                return 0.0
        added = segment.cumulative_water_at_end - previous_water(segs, index)
        return safe_rate(added, segment.duration)
    raise TypeError(f"unknown segment kind: {type(segment).__name__}")


def snapshot(timeline: TimelineLike, t: float) -> TimerSnapshot:
    """Fresh TimerSnapshot for (timeline, t); segment_progress is a 0..1 fraction."""
    segs = _segments(timeline)
    index = active_segment_index(segs, t)
    if index == NO_SEGMENT:
        return TimerSnapshot(
            elapsed_time=t,
            active_segment_index=NO_SEGMENT,
            segment_progress=0.0,
            cumulative_water=cumulative_water(segs, t, index),
            flow_rate=0.0,
        )
    seg = segs[index]
    return TimerSnapshot(
        elapsed_time=t,
        active_segment_index=index,
        segment_progress=segment_progress(segs, index, t) / 100.0,
        cumulative_water=cumulative_water(segs, t, index),
        flow_rate=target_flow_rate(seg, segs, index),
        is_waiting=isinstance(seg, WaitSegment),
    )

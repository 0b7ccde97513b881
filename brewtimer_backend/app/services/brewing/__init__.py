# brewtimer_backend/app/services/brewing/__init__.py
"""
Recipe -> Timeline pipeline.

    from brewtimer_backend.app.services.brewing import (
        auto_migrate_stages, build_timeline, snapshot,
    )
"""

from __future__ import annotations

# ---- Schema migration ----
from .stage_migration import (  # noqa: F401
    is_legacy_format,
    migrate_stages,
    to_legacy_format,
    auto_migrate_stages,
    parse_water,
)

# ---- Expansion ----
from .stage_expander import build_timeline, expand_stages, is_espresso_recipe  # noqa: F401

# ---- Queries ----
from .timeline_query import (  # noqa: F401
    NO_SEGMENT,
    active_segment_index,
    segment_progress,
    cumulative_water,
    target_flow_rate,
    snapshot,
)

__all__ = [
    "is_legacy_format", "migrate_stages", "to_legacy_format", "auto_migrate_stages", "parse_water",
    "build_timeline", "expand_stages", "is_espresso_recipe",
    "NO_SEGMENT", "active_segment_index", "segment_progress", "cumulative_water",
    "target_flow_rate", "snapshot",
]

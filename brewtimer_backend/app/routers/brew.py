# brewtimer_backend/app/routers/brew.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from brewtimer_backend.app.schemas import Recipe, SessionLoadRequest, SnapshotRequest, StagesIn
from brewtimer_backend.app.services.brewing import (
    auto_migrate_stages,
    build_timeline,
    is_legacy_format,
    snapshot,
    to_legacy_format,
)
from brewtimer_backend.app.services.brewing.stage_utils import format_time
from brewtimer_backend.app.services.timer import session

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/brew", tags=["brew"])


# ---------- stateless: schema + timeline ----------

@router.post("/stages/migrate")
def migrate(req: StagesIn) -> Dict[str, Any]:
    """Canonical stages for any input; `legacy` says whether a migration happened."""
    legacy = is_legacy_format(req.stages)
    stages = auto_migrate_stages(req.stages)
    return {
        "legacy": legacy,
        "stages": [s.model_dump(mode="json", exclude_none=True) for s in stages],
    }

@router.post("/stages/legacy")
def export_legacy(req: StagesIn) -> Dict[str, Any]:
    stages = to_legacy_format(auto_migrate_stages(req.stages))
    return {"stages": [s.model_dump(mode="json", exclude_none=True) for s in stages]}

@router.post("/timeline")
def timeline(recipe: Recipe) -> Dict[str, Any]:
    tl = build_timeline(recipe)
    return {
        "segments": [seg.model_dump(mode="json") for seg in tl.segments],
        "total_duration": tl.total_duration,
        "total_water": tl.total_water,
        "total_duration_label": format_time(tl.total_duration),
    }

@router.post("/timeline/snapshot")
def timeline_snapshot(req: SnapshotRequest) -> Dict[str, Any]:
    return snapshot(build_timeline(req.recipe), req.elapsed_time).model_dump(mode="json")


# ---------- live session (one brew per process) ----------

@router.get("/session")
async def session_state() -> Dict[str, Any]:
    return session.describe(session.get_controller())

@router.post("/session/load")
async def session_load(req: SessionLoadRequest) -> Dict[str, Any]:
    ctl = session.get_controller()
    if req.settings is not None:
        ctl.update_settings(req.settings)
    ok = ctl.load_recipe(req.recipe)
    if not ok:
        logger.info("[brew] load refused in state %s", ctl.state.value)
    return {"ok": ok, **session.describe(ctl)}

@router.post("/session/{action}")
async def session_action(action: str) -> Dict[str, Any]:
    ctl = session.get_controller()
    if action == "start":
        ok = ctl.start()
    elif action == "pause":
        ok = ctl.pause()
    elif action == "skip":
        ok = ctl.skip()
    elif action == "reset":
        ctl.reset()
        ok = True
    else:
        raise HTTPException(status_code=404, detail=f"unknown session action: {action}")
    logger.info("[brew] session %s -> ok=%s state=%s", action, ok, ctl.state.value)
    return {"ok": ok, **session.describe(ctl)}

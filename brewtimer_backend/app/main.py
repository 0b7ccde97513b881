# main.py: backend entrypoint
from __future__ import annotations

import importlib
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from brewtimer_backend.app.config import APP_ENV, DEBUG_MODE, validate_manifest
from brewtimer_backend.app.services.timer import session

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="Brew Timer API")

# --- CORS for Vite dev -------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include routers under /api ----------------------------------------------
def _include(module_name: str, prefix: str = "/api") -> bool:
    m = importlib.import_module(f"brewtimer_backend.app.routers.{module_name}")
    router = getattr(m, "router", None)
    if router is None:
        logger.warning("… %s has no router, not mounted", module_name)
        return False
    app.include_router(router, prefix=prefix)
    logger.info("✓ Mounted %s at %s", module_name, prefix)
    return True

_include("brew")  # /api/brew/...


# --- Lifecycle / health ------------------------------------------------------
@app.on_event("shutdown")
async def _stop_session() -> None:
    session.reset_controller()

@app.get("/health")
async def health():
    return {"ok": True}

@app.get("/api/health")
async def api_health():
    return {"ok": True, "env": APP_ENV, "debug": DEBUG_MODE, "rules": validate_manifest()}

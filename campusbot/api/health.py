from __future__ import annotations

import logging
from fastapi import APIRouter, Depends

from campusbot.api.deps import settings_dep
from campusbot.core.config import Settings

logger = logging.getLogger("campusbot.api.health")
router = APIRouter()


@router.get("/ping")
def ping():
    logger.info("GET /health/ping")
    return {"ok": True}


@router.get("/config")
def config_health(settings: Settings = Depends(settings_dep)):
    """Non-secret configuration summary (keys are reported as present/absent only)."""
    out = settings.summary()
    logger.info("GET /health/config classifier=%s search_key=%s", out["classifier"], out["searchKeyPresent"])
    return {"ok": True, **out}

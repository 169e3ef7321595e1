from __future__ import annotations
from datetime import datetime, timezone
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from fwb_gallery.config import settings
from fwb_gallery.db import get_session

router = APIRouter(tags=["system"])
log = structlog.get_logger()

@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("x-request-id") or request.state.request_id,
    }

@router.get("/health/ready")
async def ready(session: AsyncSession = Depends(get_session)):
    """Readiness: the database answers. Redis is not checked; thumbnail delivery degrades on its own."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        log.warning("readiness_failed", error=str(exc))
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "down"})
    return {"status": "ready", "database": "up"}

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "display_name": settings.app_display_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
    }

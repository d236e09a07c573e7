"""Health check endpoint.

Checks system component availability:
- PostgreSQL database
- OpenRouter configuration
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


def get_db() -> Any:
    from app.db.prisma_client import get_prisma
    return get_prisma()


@router.get("/health")
async def health_check(db=Depends(get_db)):
    """Health check endpoint - verify all system components.

    Returns:
        JSON with status of each component
    """
    health_status = {
        "database": "unknown",
        "llm": "unknown",
        "overall": "unknown",
    }

    try:
        await db.query_raw("SELECT 1")
        health_status["database"] = "ok"
        logger.debug("Database health check: OK")
    except Exception as e:
        health_status["database"] = "error"
        logger.error("Database health check failed: %s", e)

    # Remote API: a call would cost tokens, so only the configuration is checked
    health_status["llm"] = "ok" if settings.OPENROUTER_API_KEY else "warning"

    if health_status["database"] == "error":
        health_status["overall"] = "unhealthy"
        status_code = 503
    elif health_status["llm"] == "ok":
        health_status["overall"] = "healthy"
        status_code = 200
    else:
        health_status["overall"] = "degraded"
        status_code = 200

    return JSONResponse(content=health_status, status_code=status_code)


@router.get("/health/simple")
async def simple_health_check():
    """Simple health check - just returns 200 OK."""
    return {"status": "ok"}

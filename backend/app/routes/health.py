"""
Caesar Backend — Health Check Route
=====================================

What:  GET /health for container probes and uptime monitors.
How:   Reports which outbound credentials are configured. Makes no outbound
       calls: probing Gemini or the Apps Script endpoint on every health
       check would spend quota.

Status levels:
    healthy   every key and the storage URL are set
    degraded  something is missing; the affected actions will fail
"""

import logging
import time

from fastapi import APIRouter, Request

from app import __version__
from app.schemas.chat import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    status = request.app.state.settings.credential_status
    overall = "healthy" if all(value == "configured" for value in status.values()) else "degraded"
    if overall != "healthy":
        logger.debug("Health check degraded: %s", status)

    return HealthResponse(
        status=overall,
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        **status,
    )

"""
StudyBuddy Backend — Health Check Routes
==========================================

What:  GET / (service banner) and GET /health (dependency status).
Who:   Docker health checks, load balancers, and humans poking the API.

Status levels:
    - healthy:  model provider reachable
    - degraded: provider unreachable or circuit breaker open (still HTTP 200;
                the service itself is up and will report upstream errors)
"""

import logging
import time

from fastapi import APIRouter, Request

from studybuddy import __version__
from studybuddy.schemas.assistant import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get("/", summary="Service banner")
async def root() -> dict:
    return {"message": "StudyBuddy Backend API", "status": "running", "version": __version__}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    """
    How:  Checks the circuit breaker first; only when it is not open is the
          provider probed with its lightweight model listing.
    """
    llm = request.app.state.assistant_service.llm
    llm_status = "available"
    overall = "healthy"

    try:
        if llm.circuit_breaker.state == llm.circuit_breaker.OPEN:
            llm_status = "circuit_open"
            overall = "degraded"
        elif not await llm.health_check():
            llm_status = "unavailable"
            overall = "degraded"
    except Exception as e:
        llm_status = "unavailable"
        overall = "degraded"
        logger.warning("Health check: %s unreachable: %s", llm.name, str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        llm_provider=llm.name,
        llm=llm_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )

"""Base HTTP endpoints for health checks and metrics."""

import logging
from enum import Enum

from fastapi import APIRouter, Response

from chat_runtime.platform.observability.metrics import metrics as prom_metrics
from chat_runtime.platform.server.health import HealthCheck

logger = logging.getLogger(__name__)

base_router = APIRouter()
base_tags: list[Enum | str] = ["base"]


@base_router.get("/health", tags=base_tags)
async def health():
    """Health check endpoint for load balancers and orchestrators.

    Returns:
        200 OK with status if healthy, 404 if unhealthy
    """
    if not HealthCheck.status():
        logger.info("health-check: fail. disabled")
        return Response(status_code=404)
    return {"status": "OK"}


@base_router.get("/metrics", tags=base_tags)
async def metrics():
    body, media_type = prom_metrics()
    return Response(body, media_type=media_type)

"""
Health check endpoint.

Provides system health status for load balancers and monitoring.
"""

from fastapi import APIRouter, HTTPException, Request
from loguru import logger

from grade_engine import __version__
from grade_engine.core.exceptions import StorageError

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint with storage status.

    Returns:
        JSON with status, version, storage status and AI provider.
        HTTP 200 if healthy, 503 if storage is unreachable.
    """
    service = request.app.state.service
    provider = service.workflow.ai_client.provider

    health_status = {
        "status": "healthy",
        "version": __version__,
        "storage": "unknown",
        "ai_provider": provider.name if provider is not None else "none",
    }

    try:
        service.store.ping()
        health_status["storage"] = "connected"
    except StorageError as e:
        health_status["status"] = "unhealthy"
        health_status["storage"] = f"disconnected: {e}"
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail=health_status)

    return health_status

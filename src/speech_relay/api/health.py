"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..config.settings import Settings
from ..core.pipeline import PipelineOrchestrator
from ..dependencies import get_orchestrator, get_settings
from ..utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    version: str
    checks: Dict[str, Any]


def collect_checks(settings: Settings, orchestrator: PipelineOrchestrator) -> Dict[str, str]:
    """Check the engine binary and collaborator credentials."""
    recognition = settings.recognition
    recognition_key = (
        recognition.openai_api_key if recognition.backend == "openai" else recognition.api_key
    )

    checks = {"api": "healthy"}
    if settings.pipeline.condition_audio:
        checks["ffmpeg"] = "available" if orchestrator.conditioner.available else "missing"
    else:
        checks["ffmpeg"] = "disabled"
    checks["recognition"] = "configured" if recognition_key else "missing_key"
    checks["translation"] = "configured" if settings.translation.api_key else "missing_key"
    checks["synthesis"] = "configured" if settings.synthesis.api_key else "missing_key"
    return checks


@router.get(
    "/health",
    response_model=HealthStatus,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    description="Check if the service is healthy and ready to accept requests"
)
async def health_check(
    settings: Settings = Depends(get_settings),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> HealthStatus:
    """Perform health check and return service status."""
    checks = collect_checks(settings, orchestrator)

    overall_status = "healthy"
    if any(value in ("missing", "missing_key") for value in checks.values()):
        overall_status = "degraded"

    return HealthStatus(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        checks=checks
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Simple liveness check for Kubernetes"
)
async def liveness():
    """Simple liveness probe."""
    return {"status": "alive"}


@router.get(
    "/health/ready",
    summary="Readiness probe",
    description="Check if service is ready to accept traffic"
)
async def readiness(
    settings: Settings = Depends(get_settings),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """Readiness probe for Kubernetes."""
    checks = collect_checks(settings, orchestrator)
    if checks["ffmpeg"] == "missing":
        logger.warning("Not ready: ffmpeg binary not found")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}

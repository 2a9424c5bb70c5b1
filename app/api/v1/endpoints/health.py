"""Health check endpoints for monitoring and orchestration."""
from fastapi import APIRouter, Response, status
from app.schemas.health import HealthCheckResponse, LivenessResponse
from app.services.health import HealthCheckService

router = APIRouter()

health_service = HealthCheckService()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health Check",
    description="Process status and database reachability"
)
async def health_check(response: Response):
    """Returns 503 when the database is unreachable."""
    health = await health_service.get_health()
    if health.status != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return health


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness Probe",
    description="Simple check to verify the application is running"
)
async def liveness_probe():
    return LivenessResponse(status="alive")

"""Health check service for monitoring application components."""
import time
from app.schemas.health import ComponentHealth, HealthCheckResponse
from app.core.database import DatabaseManager, db_manager

APPLICATION_VERSION = "1.0.0"

# Store application start time
APPLICATION_START_TIME = time.time()


class HealthCheckService:
    """Service for checking application and component health."""

    def __init__(self, database: DatabaseManager = db_manager):
        self.version = APPLICATION_VERSION
        self.database = database

    async def check_database(self) -> ComponentHealth:
        """Check database connectivity."""
        start_time = time.time()

        if not self.database.is_initialized:
            return ComponentHealth(
                status="unhealthy",
                message="Database not initialized",
                latency_ms=round((time.time() - start_time) * 1000, 2),
            )

        is_connected = await self.database.check_connection()
        latency_ms = round((time.time() - start_time) * 1000, 2)

        if is_connected:
            return ComponentHealth(status="healthy", message="Database connection successful", latency_ms=latency_ms)
        return ComponentHealth(status="unhealthy", message="Database connection failed", latency_ms=latency_ms)

    def get_uptime(self) -> float:
        """Get application uptime in seconds."""
        return time.time() - APPLICATION_START_TIME

    async def get_health(self) -> HealthCheckResponse:
        components = {"database": await self.check_database()}
        overall_status = "unhealthy" if any(c.status == "unhealthy" for c in components.values()) else "healthy"

        return HealthCheckResponse(
            status=overall_status,
            version=self.version,
            uptime_seconds=round(self.get_uptime(), 2),
            components=components,
        )

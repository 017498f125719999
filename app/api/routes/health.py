# app/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.core.config import get_settings


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Response schema for the health check endpoint.
    """

    status: str = Field(..., description="Overall health status.", examples=["ok"])
    app_name: str = Field(..., description="Name of the running application.")
    environment: str = Field(..., description="Deployment environment (local/dev/stage/prod).")
    stats_timezone: str = Field(
        ...,
        description="Timezone used for calendar periods and trend date keys.",
        examples=["Europe/Stockholm"],
    )
    timestamp_utc: datetime = Field(..., description="Server time (UTC) of this check.")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check for the Meeting Stats service",
    description=(
        "Lightweight liveness probe. Does not touch the database so it stays "
        "green while storage is degraded; statistics endpoints report storage "
        "failures themselves."
    ),
)
async def health_check() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        stats_timezone=settings.STATS_TIMEZONE,
        timestamp_utc=datetime.now(tz=timezone.utc),
    )

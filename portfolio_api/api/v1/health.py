"""Health check endpoint with user store connectivity check."""

from typing import Annotated

from fastapi import APIRouter, Depends

from portfolio_api.api.v1.auth import get_container
from portfolio_api.core.container import ServiceContainer
from portfolio_api.core.database import check_db_connected
from portfolio_api.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
async def get_health(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    connected = container.engine is None or await check_db_connected(container.engine)
    return HealthResponse(
        status="ok" if connected else "degraded",
        environment=container.settings.APP_ENV,
        database="connected" if connected else "disconnected",
    )

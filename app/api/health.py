"""
Health check endpoints for the Dispute Automation Service.
"""
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from app.core.config import get_settings
from app.core.dependencies import get_payment_gateway
from app.core.logging import get_logger
from app.database import check_connection
from app.services.gateway import PaymentGateway

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    uptime_seconds: float
    timestamp: datetime
    service_name: str


class DependenciesHealthResponse(BaseModel):
    """Dependencies health check response model."""

    database: bool
    payment_gateway: bool
    overall_status: str
    circuit_breakers: Dict[str, Dict[str, Any]]
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Liveness: the process is up and serving requests."""
    settings = get_settings()
    start_time = getattr(request.app.state, "start_time", time.time())

    return HealthResponse(
        status="healthy",
        version=settings.service_version,
        uptime_seconds=time.time() - start_time,
        timestamp=datetime.now(timezone.utc),
        service_name=settings.service_name,
    )


@router.get("/health/dependencies", response_model=DependenciesHealthResponse)
async def dependencies_health_check(gateway: PaymentGateway = Depends(get_payment_gateway)):
    """
    Readiness of the database and the payment gateway.

    The gateway is reported from its circuit breaker state; no probe
    request is sent.
    """
    database_ok = await check_connection()
    circuit_status = gateway.get_circuit_status()
    gateway_ok = circuit_status["is_available"]

    if database_ok and gateway_ok:
        overall_status = "healthy"
    elif database_ok:
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    logger.info(
        "Dependencies health check completed",
        database=database_ok,
        payment_gateway=gateway_ok,
        overall_status=overall_status,
    )

    return DependenciesHealthResponse(
        database=database_ok,
        payment_gateway=gateway_ok,
        overall_status=overall_status,
        circuit_breakers={circuit_status["service"]: circuit_status},
        timestamp=datetime.now(timezone.utc),
    )

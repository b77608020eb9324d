"""
Payment gateway client for status queries and dispute filing.
"""
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.circuit_breaker import CircuitBreakerConfig, ServiceClient
from app.core.config import Settings, get_settings
from app.core.exceptions import ExternalServiceError
from app.core.logging import get_logger
from app.core.retry import RetryConfig, create_async_retry_decorator
from app.models.gateway import (
    DisputeRequest,
    DisputeResponse,
    PaymentStatusRequest,
    PaymentStatusResponse,
)

logger = get_logger(__name__)

SERVICE_NAME = "payment_gateway"


class PaymentGateway:
    """
    Client for the payment gateway.

    Failed calls (transport error, timeout, open circuit, non-2xx or an
    unreadable body) are logged and reported as None. Status queries are
    retried because they are read-only; dispute filing is sent once, and a
    4xx dispute answer is parsed so its errors reach the caller.
    """

    def __init__(self, settings: Optional[Settings] = None, service_client: Optional[ServiceClient] = None):
        settings = settings or get_settings()
        self.status_path = settings.gateway_payment_status_path
        self.dispute_path = settings.gateway_dispute_path
        self.service_client = service_client or ServiceClient(
            service_name=SERVICE_NAME,
            base_url=settings.gateway_base_url,
            timeout_seconds=settings.gateway_timeout_seconds,
            circuit_breaker_config=CircuitBreakerConfig(
                failure_threshold=settings.circuit_breaker_failure_threshold,
                timeout=settings.circuit_breaker_timeout_seconds,
            ),
        )
        retry_config = RetryConfig(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
        )
        self._post_status = create_async_retry_decorator(retry_config, SERVICE_NAME)(self._post)

    async def query_status(self, request: PaymentStatusRequest) -> Optional[PaymentStatusResponse]:
        """Query the current status of a submitted payment."""
        payload = request.model_dump(by_alias=True)
        try:
            body = await self._post_status(self.status_path, payload)
            response = PaymentStatusResponse.model_validate(body)
        except (ExternalServiceError, PydanticValidationError) as e:
            logger.error(
                "Payment status query failed",
                reference_number=request.reference_number,
                transaction_id=request.transaction_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        logger.info(
            "Payment status received",
            reference_number=request.reference_number,
            response_code=response.response_code,
            status_code=response.result.status_code if response.result else None,
        )
        return response

    async def file_dispute(self, request: DisputeRequest) -> Optional[DisputeResponse]:
        """File a dispute (Acknowledge or Reset) for a submitted payment."""
        payload = request.model_dump(by_alias=True)
        try:
            body = await self._post(self.dispute_path, payload, accept_client_errors=True)
            response = DisputeResponse.model_validate(body)
        except (ExternalServiceError, PydanticValidationError) as e:
            logger.error(
                "Dispute filing failed",
                reference_number=request.reference_number,
                dispute_type=request.dispute_type,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        logger.info(
            "Dispute response received",
            reference_number=request.reference_number,
            dispute_type=request.dispute_type,
            dispute_status=response.status,
        )
        return response

    async def _post(self, path: str, payload: Dict[str, Any], accept_client_errors: bool = False) -> Dict[str, Any]:
        return await self.service_client.post(path, accept_client_errors=accept_client_errors, json=payload)

    async def close(self) -> None:
        await self.service_client.close()

    def get_circuit_status(self) -> Dict[str, Any]:
        return self.service_client.get_circuit_status()

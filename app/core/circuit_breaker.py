"""
Circuit breaker and HTTP service client for calls to the payment gateway.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx
import structlog

from app.core.exceptions import (
    CircuitOpenError,
    ExternalServiceError,
    ExternalServiceTimeoutError,
    ServiceUnavailableError,
)

logger = structlog.get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5
    success_threshold: int = 2
    timeout: int = 60
    half_open_max_calls: int = 3


@dataclass
class CircuitBreakerMetrics:
    """Rolling call statistics exposed on the dependencies health endpoint."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    circuit_open_count: int = 0
    response_times: List[float] = field(default_factory=list)

    def record(self, success: bool, response_time: float) -> None:
        self.total_calls += 1
        if success:
            self.successful_calls += 1
        else:
            self.failed_calls += 1

        self.response_times.append(response_time)
        if len(self.response_times) > 100:
            self.response_times.pop(0)

    @property
    def failure_rate(self) -> float:
        if not self.total_calls:
            return 0.0
        return self.failed_calls / self.total_calls

    @property
    def average_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)


class CircuitBreaker:
    """Circuit breaker for external service calls."""

    def __init__(
        self,
        service_name: str = "Unknown Service",
        config: Optional[CircuitBreakerConfig] = None,
    ):
        self.service_name = service_name
        self.config = config or CircuitBreakerConfig()

        self.failure_count = 0
        self.success_count = 0
        self.half_open_calls = 0
        self.last_failure_time: Optional[float] = None
        self.state = CircuitState.CLOSED
        self.metrics = CircuitBreakerMetrics()

    async def call_async(self, func: Callable, *args, **kwargs) -> Any:
        """Execute async function with circuit breaker protection."""
        if self.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                self._transition_to_half_open()
            else:
                logger.warning(
                    "Circuit breaker rejecting call - OPEN state",
                    service=self.service_name,
                    failure_count=self.failure_count,
                )
                raise ServiceUnavailableError(
                    self.service_name,
                    f"Circuit breaker is OPEN for {self.service_name}",
                    retry_after=self.config.timeout,
                )

        if self.state == CircuitState.HALF_OPEN:
            if self.half_open_calls >= self.config.half_open_max_calls:
                raise ServiceUnavailableError(
                    self.service_name,
                    f"Circuit breaker half-open limit reached for {self.service_name}",
                )
            self.half_open_calls += 1

        start_time = time.time()
        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._on_failure(time.time() - start_time)
            raise
        self._on_success(time.time() - start_time)
        return result

    def _should_attempt_reset(self) -> bool:
        return (
            self.last_failure_time is not None
            and time.time() - self.last_failure_time >= self.config.timeout
        )

    def _transition_to_half_open(self) -> None:
        self.state = CircuitState.HALF_OPEN
        self.half_open_calls = 0
        self.success_count = 0
        logger.info("Circuit breaker transitioning to half-open", service=self.service_name)

    def _open(self) -> None:
        self.state = CircuitState.OPEN
        self.metrics.circuit_open_count += 1
        logger.warning(
            "Circuit breaker opened",
            service=self.service_name,
            failure_count=self.failure_count,
            threshold=self.config.failure_threshold,
        )

    def _on_success(self, response_time: float) -> None:
        self.metrics.record(True, response_time)

        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.config.success_threshold:
                self.reset()
        else:
            self.failure_count = 0

    def _on_failure(self, response_time: float) -> None:
        self.metrics.record(False, response_time)
        self.failure_count += 1
        self.last_failure_time = time.time()

        # any failure while probing reopens immediately
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.config.failure_threshold:
            self._open()

    def reset(self) -> None:
        """Return to closed state, keeping metrics."""
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.half_open_calls = 0
        logger.info("Circuit breaker closed", service=self.service_name)

    def get_status(self) -> Dict[str, Any]:
        """Get current circuit breaker status."""
        return {
            "service": self.service_name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.config.failure_threshold,
            "is_available": self.state != CircuitState.OPEN,
            "last_failure_time": self.last_failure_time,
            "metrics": {
                "total_calls": self.metrics.total_calls,
                "successful_calls": self.metrics.successful_calls,
                "failed_calls": self.metrics.failed_calls,
                "failure_rate": round(self.metrics.failure_rate, 4),
                "average_response_time": round(self.metrics.average_response_time, 3),
                "circuit_open_count": self.metrics.circuit_open_count,
            },
        }


class ServiceClient:
    """
    JSON-over-HTTP client with circuit breaker protection.

    Every transport, timeout or non-2xx failure is raised as
    ExternalServiceError, and a call refused by the open circuit as its
    subclass CircuitOpenError, so callers only deal with one exception family.
    """

    def __init__(
        self,
        service_name: str,
        base_url: str,
        timeout_seconds: int = 30,
        circuit_breaker_config: Optional[CircuitBreakerConfig] = None,
    ):
        self.service_name = service_name
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.circuit_breaker = CircuitBreaker(
            service_name=service_name,
            config=circuit_breaker_config or CircuitBreakerConfig(),
        )
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout_seconds)

        logger.info(
            "Service client initialized",
            service_name=service_name,
            base_url=self.base_url,
            timeout_seconds=timeout_seconds,
        )

    async def post(self, endpoint: str, accept_client_errors: bool = False, **kwargs) -> Dict[str, Any]:
        """
        POST and return the decoded JSON object.

        With accept_client_errors, a 4xx response carrying a JSON object is
        returned to the caller instead of raised.
        """
        return await self._make_request("POST", endpoint, accept_client_errors=accept_client_errors, **kwargs)

    async def _make_request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        try:
            return await self.circuit_breaker.call_async(self._send, method, endpoint, **kwargs)
        except ServiceUnavailableError as e:
            raise CircuitOpenError(
                service_name=self.service_name,
                message=f"Service unavailable: {e.detail}",
            )

    async def _send(
        self, method: str, endpoint: str, accept_client_errors: bool = False, **kwargs
    ) -> Dict[str, Any]:
        url = f"/{endpoint.lstrip('/')}"
        try:
            response = await self.client.request(method, url, **kwargs)
            if not (accept_client_errors and response.is_client_error):
                response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(
                "Timeout in service call",
                service_name=self.service_name,
                method=method,
                endpoint=endpoint,
                error=str(e),
            )
            raise ExternalServiceTimeoutError(self.service_name, self.timeout_seconds)
        except httpx.HTTPStatusError as e:
            logger.error(
                "HTTP error in service call",
                service_name=self.service_name,
                method=method,
                endpoint=endpoint,
                status_code=e.response.status_code,
            )
            raise ExternalServiceError(
                service_name=self.service_name,
                message=f"HTTP {e.response.status_code}: {e.response.text}",
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            logger.error(
                "Request error in service call",
                service_name=self.service_name,
                method=method,
                endpoint=endpoint,
                error=str(e),
            )
            raise ExternalServiceError(
                service_name=self.service_name,
                message=f"Request failed: {e}",
            )

        try:
            payload = response.json()
        except ValueError:
            raise ExternalServiceError(
                service_name=self.service_name,
                message="Response body is not valid JSON",
                status_code=response.status_code,
            )
        if not isinstance(payload, dict):
            raise ExternalServiceError(
                service_name=self.service_name,
                message="Response body is not a JSON object",
                status_code=response.status_code,
            )
        return payload

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def get_circuit_status(self) -> Dict[str, Any]:
        return self.circuit_breaker.get_status()

"""
Tests for circuit breaker implementation.
"""
import httpx
import pytest

from app.core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    ServiceClient,
)
from app.core.exceptions import (
    CircuitOpenError,
    ExternalServiceError,
    ExternalServiceTimeoutError,
    ServiceUnavailableError,
)


class TestCircuitBreakerConfig:
    """Test circuit breaker configuration."""

    def test_default_config(self):
        config = CircuitBreakerConfig()
        assert config.failure_threshold == 5
        assert config.success_threshold == 2
        assert config.timeout == 60
        assert config.half_open_max_calls == 3


class TestCircuitBreaker:
    """Test circuit breaker functionality."""

    @pytest.fixture
    def circuit_breaker(self):
        config = CircuitBreakerConfig(failure_threshold=3, success_threshold=2, timeout=1)
        return CircuitBreaker("payment_gateway", config)

    @pytest.fixture
    def failing_function(self):
        async def fail_func():
            raise ExternalServiceError("payment_gateway", "Service unavailable")
        return fail_func

    @pytest.fixture
    def successful_function(self):
        async def success_func():
            return {"responseCode": "000"}
        return success_func

    async def open_circuit(self, circuit_breaker, failing_function):
        for _ in range(circuit_breaker.config.failure_threshold):
            with pytest.raises(ExternalServiceError):
                await circuit_breaker.call_async(failing_function)

    def expire_timeout(self, circuit_breaker):
        circuit_breaker.last_failure_time -= circuit_breaker.config.timeout + 1

    @pytest.mark.asyncio
    async def test_initial_closed_state(self, circuit_breaker):
        assert circuit_breaker.state == CircuitState.CLOSED
        assert circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, circuit_breaker, successful_function, failing_function):
        for _ in range(2):
            with pytest.raises(ExternalServiceError):
                await circuit_breaker.call_async(failing_function)

        result = await circuit_breaker.call_async(successful_function)

        assert result == {"responseCode": "000"}
        assert circuit_breaker.failure_count == 0
        assert circuit_breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_circuit_opens_after_failure_threshold(self, circuit_breaker, failing_function):
        await self.open_circuit(circuit_breaker, failing_function)

        assert circuit_breaker.state == CircuitState.OPEN
        assert circuit_breaker.metrics.circuit_open_count == 1

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await circuit_breaker.call_async(failing_function)
        assert exc_info.value.retry_after == 1

    @pytest.mark.asyncio
    async def test_half_open_closes_after_success_threshold(
        self, circuit_breaker, successful_function, failing_function
    ):
        await self.open_circuit(circuit_breaker, failing_function)
        self.expire_timeout(circuit_breaker)

        await circuit_breaker.call_async(successful_function)
        assert circuit_breaker.state == CircuitState.HALF_OPEN
        assert circuit_breaker.half_open_calls == 1

        await circuit_breaker.call_async(successful_function)
        assert circuit_breaker.state == CircuitState.CLOSED
        assert circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_failure_in_half_open_reopens(self, circuit_breaker, successful_function, failing_function):
        await self.open_circuit(circuit_breaker, failing_function)
        self.expire_timeout(circuit_breaker)

        await circuit_breaker.call_async(successful_function)
        with pytest.raises(ExternalServiceError):
            await circuit_breaker.call_async(failing_function)

        assert circuit_breaker.state == CircuitState.OPEN
        assert circuit_breaker.metrics.circuit_open_count == 2

    @pytest.mark.asyncio
    async def test_half_open_call_limit(self, failing_function):
        circuit_breaker = CircuitBreaker(
            "payment_gateway",
            CircuitBreakerConfig(failure_threshold=1, success_threshold=5, timeout=1, half_open_max_calls=2),
        )

        async def ok():
            return {}

        with pytest.raises(ExternalServiceError):
            await circuit_breaker.call_async(failing_function)
        self.expire_timeout(circuit_breaker)

        await circuit_breaker.call_async(ok)
        await circuit_breaker.call_async(ok)
        with pytest.raises(ServiceUnavailableError):
            await circuit_breaker.call_async(ok)

    @pytest.mark.asyncio
    async def test_metrics_tracking(self, circuit_breaker, successful_function, failing_function):
        for _ in range(3):
            await circuit_breaker.call_async(successful_function)
        for _ in range(2):
            with pytest.raises(ExternalServiceError):
                await circuit_breaker.call_async(failing_function)

        metrics = circuit_breaker.metrics
        assert metrics.total_calls == 5
        assert metrics.successful_calls == 3
        assert metrics.failed_calls == 2
        assert metrics.failure_rate == pytest.approx(0.4)
        assert metrics.average_response_time >= 0.0

    def test_get_status(self, circuit_breaker):
        status = circuit_breaker.get_status()

        assert status["service"] == "payment_gateway"
        assert status["state"] == CircuitState.CLOSED.value
        assert status["is_available"] is True
        assert status["failure_threshold"] == 3
        assert status["metrics"]["total_calls"] == 0

    @pytest.mark.asyncio
    async def test_reset(self, circuit_breaker, failing_function):
        await self.open_circuit(circuit_breaker, failing_function)

        circuit_breaker.reset()

        assert circuit_breaker.state == CircuitState.CLOSED
        assert circuit_breaker.failure_count == 0
        assert circuit_breaker.half_open_calls == 0


class TestServiceClient:
    """Test service client with circuit breaker."""

    @pytest.fixture
    def service_client(self):
        return ServiceClient(
            service_name="payment_gateway",
            base_url="https://gateway.test/",
            timeout_seconds=5,
            circuit_breaker_config=CircuitBreakerConfig(failure_threshold=2, timeout=30),
        )

    def use_handler(self, service_client, handler):
        service_client.client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url=service_client.base_url
        )

    @pytest.mark.asyncio
    async def test_successful_post(self, service_client):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/payment/status"
            return httpx.Response(200, json={"responseCode": "000"})

        self.use_handler(service_client, handler)

        assert await service_client.post("api/payment/status", json={}) == {"responseCode": "000"}

    @pytest.mark.asyncio
    async def test_http_error_raises_external_service_error(self, service_client):
        self.use_handler(service_client, lambda request: httpx.Response(500, text="Internal Server Error"))

        with pytest.raises(ExternalServiceError) as exc_info:
            await service_client.post("/api/payment/status", json={})

        assert exc_info.value.service_name == "payment_gateway"
        assert exc_info.value.status_code == 500
        assert "HTTP 500" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_client_error_returned_when_accepted(self, service_client):
        self.use_handler(service_client, lambda request: httpx.Response(409, json={"status": 409}))

        result = await service_client.post("/api/payment/dispute", accept_client_errors=True, json={})

        assert result == {"status": 409}
        assert service_client.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_timeout_raises_timeout_error(self, service_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        self.use_handler(service_client, handler)

        with pytest.raises(ExternalServiceTimeoutError) as exc_info:
            await service_client.post("/api/payment/status", json={})
        assert exc_info.value.timeout_seconds == 5

    @pytest.mark.asyncio
    async def test_non_object_body_raises(self, service_client):
        self.use_handler(service_client, lambda request: httpx.Response(200, json=["a", "b"]))

        with pytest.raises(ExternalServiceError):
            await service_client.post("/api/payment/status", json={})

    @pytest.mark.asyncio
    async def test_open_circuit_short_circuits_requests(self, service_client):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        self.use_handler(service_client, handler)

        for _ in range(2):
            with pytest.raises(ExternalServiceError):
                await service_client.post("/api/payment/status", json={})
        assert service_client.circuit_breaker.state == CircuitState.OPEN

        with pytest.raises(ExternalServiceError) as exc_info:
            await service_client.post("/api/payment/status", json={})

        assert isinstance(exc_info.value, CircuitOpenError)
        assert "Circuit breaker is OPEN" in str(exc_info.value)
        assert len(calls) == 2

    def test_get_circuit_status(self, service_client):
        status = service_client.get_circuit_status()

        assert status["service"] == "payment_gateway"
        assert status["state"] == "closed"

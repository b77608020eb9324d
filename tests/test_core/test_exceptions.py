"""
Tests for custom exception hierarchy.
"""
from fastapi import HTTPException, status

from app.core.exceptions import (
    BaseAPIException,
    CircuitOpenError,
    DatabaseError,
    ExternalServiceError,
    ExternalServiceTimeoutError,
    InternalServerError,
    ServiceUnavailableError,
    ValidationError,
    get_user_friendly_error_message,
)
from app.core.logging import correlation_context


class TestBaseAPIException:
    """Test base API exception."""

    def test_is_http_exception(self):
        exc = BaseAPIException(status_code=400, detail="Test error", error_code="TEST_ERROR")

        assert isinstance(exc, HTTPException)
        assert exc.status_code == 400
        assert exc.correlation_id is not None
        assert exc.context == {}

    def test_correlation_id_from_context(self):
        with correlation_context("corr-abc"):
            exc = BaseAPIException(status_code=400, detail="Test error")

        assert exc.correlation_id == "corr-abc"

    def test_to_dict(self):
        exc = BaseAPIException(
            status_code=400,
            detail="Test error",
            error_code="TEST_ERROR",
            correlation_id="test-123",
            context={"field": "test"},
        )

        assert exc.to_dict() == {
            "error": True,
            "error_code": "TEST_ERROR",
            "message": "Test error",
            "correlation_id": "test-123",
            "context": {"field": "test"},
        }


class TestValidationError:
    """Test validation error."""

    def test_basic_validation_error(self):
        exc = ValidationError("BranchCode is required.")

        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.error_code == "DSP_001"
        assert exc.detail == "BranchCode is required."
        assert exc.context["field"] is None

    def test_validation_error_with_field(self):
        exc = ValidationError("CollFrom is required", field="collFrom", value="")

        assert exc.error_code == "DSP_001_COLLFROM"
        assert "collFrom" in exc.detail
        assert "CollFrom is required" in exc.detail
        assert exc.context["value"] == ""


class TestServiceUnavailableError:
    """Test circuit-open error."""

    def test_retry_after_header(self):
        exc = ServiceUnavailableError("payment_gateway", retry_after=60)

        assert exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert exc.error_code == "DSP_004"
        assert exc.headers["Retry-After"] == "60"
        assert "payment_gateway" in exc.detail
        assert exc.context["service_name"] == "payment_gateway"

    def test_without_retry_after(self):
        exc = ServiceUnavailableError("payment_gateway", "Circuit breaker is OPEN")

        assert exc.detail == "Circuit breaker is OPEN"
        assert "Retry-After" not in exc.headers


class TestNonAPIErrors:
    """External service and database errors."""

    def test_internal_server_error(self):
        exc = InternalServerError()

        assert exc.status_code == 500
        assert exc.error_code == "INTERNAL_SERVER_ERROR"

    def test_external_service_error(self):
        exc = ExternalServiceError("payment_gateway", "HTTP 502: bad gateway", status_code=502, path="/status")

        assert str(exc) == "[payment_gateway] HTTP 502: bad gateway"
        assert exc.status_code == 502
        assert exc.context == {"path": "/status"}

    def test_timeout_is_external_service_error(self):
        exc = ExternalServiceTimeoutError("payment_gateway", 30)

        assert isinstance(exc, ExternalServiceError)
        assert exc.timeout_seconds == 30
        assert "30 seconds" in str(exc)

    def test_retryability(self):
        assert ExternalServiceError("payment_gateway", "reset").is_retryable is True
        assert ExternalServiceError("payment_gateway", "HTTP 503", status_code=503).is_retryable is True
        assert ExternalServiceError("payment_gateway", "HTTP 404", status_code=404).is_retryable is False
        assert ExternalServiceTimeoutError("payment_gateway", 30).is_retryable is True

    def test_circuit_open_is_final(self):
        exc = CircuitOpenError("payment_gateway", "Service unavailable")

        assert isinstance(exc, ExternalServiceError)
        assert exc.is_retryable is False

    def test_database_error_operation_in_context(self):
        exc = DatabaseError("Failed to update collection", operation="update_collection", collection_id=7)

        assert exc.operation == "update_collection"
        assert exc.context == {"operation": "update_collection", "collection_id": 7}


class TestUserFriendlyMessages:
    """Error code to user message mapping."""

    def test_known_codes(self):
        assert "Validation failed" in get_user_friendly_error_message("DSP_001_BRANCHCODE")
        assert "temporarily unavailable" in get_user_friendly_error_message("DSP_004")

    def test_unknown_code(self):
        assert get_user_friendly_error_message("SOMETHING_ELSE") == "An error occurred. Please try again."
        assert get_user_friendly_error_message(None) == "An error occurred. Please try again."

"""
Pytest configuration and fixtures for the Dispute Automation Service.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime
from decimal import Decimal
from typing import Generator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.dependencies import get_payment_gateway
from app.main import app
from app.models.collection import BillLink, CollectionKey, CollectionRecord, SubmissionLog
from app.models.gateway import (
    DisputeData,
    DisputeError,
    DisputeResponse,
    PaymentStatusResponse,
    PaymentStatusResult,
)
from app.models.reconciliation import IssueClaim
from app.services.ports import (
    BillLinkStore,
    CollectionStore,
    DisputeGatewayClient,
    PaymentGatewayClient,
    PaymentLogStore,
)
from app.services.reconciliation_service import ReconciliationOrchestrator


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.

    Dependency overrides and the cached gateway client are reset afterwards.
    """
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    get_payment_gateway.cache_clear()


@pytest.fixture
def api_prefix() -> str:
    """Get the API prefix from settings."""
    return settings.api_prefix


@pytest.fixture
def sample_headers() -> dict:
    """Sample request headers with correlation ID."""
    return {
        "X-Correlation-ID": "test-correlation-123",
        "Content-Type": "application/json",
    }


@pytest.fixture
def reconcile_payload() -> dict:
    """Valid reconcile request body."""
    return {
        "clientId": 31,
        "issueId": 1,
        "collFrom": "0171234567",
        "branchCode": "0502",
        "billNumber": "B-20261019-0001",
    }


@pytest.fixture
def collection_record() -> CollectionRecord:
    return CollectionRecord(
        collection_id=1001,
        client_id=31,
        branch_code="0502",
        coll_from="0171234567",
        bill_number="B-20261019-0001",
        amount=Decimal("1250.00"),
        coll_date=datetime(2026, 10, 19, 10, 30),
        coll_status_id=1,
    )


@pytest.fixture
def bill_link() -> BillLink:
    return BillLink(collection_id=1001, transaction_id="TX-778899", account_reference="SMS-445566")


@pytest.fixture
def submission_log() -> SubmissionLog:
    return SubmissionLog(
        transaction_id="TX-778899",
        reference_number="REF-20261019-42",
        request_id="REQ-1",
        logged_at=datetime(2026, 10, 19, 10, 31),
    )


@pytest.fixture
def make_claim():
    """Build an IssueClaim for the sample collection."""
    def _make(issue_id: int = 1, client_type: str = "BREB") -> IssueClaim:
        return IssueClaim(
            requested_issue_id=issue_id,
            client_type=client_type,
            key=CollectionKey(client_id=31, coll_from="0171234567", branch_code="0502"),
        )
    return _make


@pytest.fixture
def make_status_response():
    """Build a gateway payment status response."""
    def _make(status_code: str = "50", response_code: str = "000", with_result: bool = True) -> PaymentStatusResponse:
        result = None
        if with_result:
            result = PaymentStatusResult(
                status_code=status_code,
                account_reference="SMS-445566",
                reference_number="REF-20261019-42",
                transaction_id="TX-778899",
                message="ok",
            )
        return PaymentStatusResponse(response_code=response_code, message="Processed", result=result)
    return _make


@pytest.fixture
def make_dispute_response():
    """Build a gateway dispute response."""
    def _make(status: int = 200, message: str = "Dispute registered", errors=None) -> DisputeResponse:
        return DisputeResponse(
            status=status,
            data=DisputeData(message=message) if message is not None else None,
            errors=[DisputeError(code=code, message=text) for code, text in (errors or [])],
        )
    return _make


@pytest.fixture
def collection_store(collection_record) -> AsyncMock:
    store = AsyncMock(spec=CollectionStore)
    store.find.return_value = collection_record
    store.update.return_value = True
    return store


@pytest.fixture
def bill_link_store(bill_link) -> AsyncMock:
    store = AsyncMock(spec=BillLinkStore)
    store.find_by_collection.return_value = bill_link
    return store


@pytest.fixture
def payment_log_store(submission_log) -> AsyncMock:
    store = AsyncMock(spec=PaymentLogStore)
    store.find_by_transaction.return_value = submission_log
    return store


@pytest.fixture
def payment_gateway(make_status_response) -> AsyncMock:
    gateway = AsyncMock(spec=PaymentGatewayClient)
    gateway.query_status.return_value = make_status_response("50")
    return gateway


@pytest.fixture
def dispute_gateway(make_dispute_response) -> AsyncMock:
    gateway = AsyncMock(spec=DisputeGatewayClient)
    gateway.file_dispute.return_value = make_dispute_response()
    return gateway


@pytest.fixture
def orchestrator(
    collection_store, bill_link_store, payment_log_store, payment_gateway, dispute_gateway
) -> ReconciliationOrchestrator:
    return ReconciliationOrchestrator(
        collection_store=collection_store,
        bill_link_store=bill_link_store,
        payment_log_store=payment_log_store,
        payment_gateway=payment_gateway,
        dispute_gateway=dispute_gateway,
        channel_id="UTILITY",
        supported_client_types=["BREB"],
    )

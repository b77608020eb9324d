"""Reconciliation claim and result models."""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.collection import ClientType, CollectionKey


class ReconciliationOutcome(str, Enum):
    """How a reconciliation attempt ended."""
    COMPLETED = "COMPLETED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    UNSUPPORTED_CLIENT = "UNSUPPORTED_CLIENT"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    GATEWAY_REJECTED = "GATEWAY_REJECTED"
    ISSUE_MISMATCH = "ISSUE_MISMATCH"
    DISPUTE_NOT_ACCEPTED = "DISPUTE_NOT_ACCEPTED"
    UPDATE_FAILED = "UPDATE_FAILED"
    UNRECOGNIZED_STATUS = "UNRECOGNIZED_STATUS"


class IssueClaim(BaseModel):
    """Caller's assertion about the status a collection should currently have."""
    requested_issue_id: int
    key: CollectionKey
    client_type: ClientType = ClientType.BREB


class ResultModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class IssueMatchInfo(ResultModel):
    requested_issue_id: int
    actual_issue_id: Optional[int] = None
    is_matched: bool
    actual_status: str
    actual_label: str


class PaymentStatusInfo(ResultModel):
    response_code: Optional[str] = None
    status_code: Optional[str] = None
    status_label: Optional[str] = None
    account_reference: Optional[str] = None
    reference_number: Optional[str] = None
    transaction_id: Optional[str] = None
    message: Optional[str] = None


class DisputeInfo(ResultModel):
    attempted: bool = False
    api_call_succeeded: Optional[bool] = None
    dispute_type_sent: Optional[int] = None
    dispute_type_label: Optional[str] = None
    dispute_status: Optional[int] = None
    dispute_message: Optional[str] = None
    errors: Tuple[str, ...] = ()


class CollectionUpdateInfo(ResultModel):
    attempted: bool
    is_successful: bool
    collection_id: Optional[int] = None
    message: str


class ReconciliationResult(ResultModel):
    """The single artifact returned for one reconciliation attempt."""
    success: bool
    message: str
    outcome: ReconciliationOutcome = Field(..., alias="status")
    issue_match: Optional[IssueMatchInfo] = None
    payment_status: Optional[PaymentStatusInfo] = None
    dispute: Optional[DisputeInfo] = None
    collection_update: Optional[CollectionUpdateInfo] = None

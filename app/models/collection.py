"""Internal collection records and the lookup data attached to them."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClientType(str, Enum):
    """Utility billers whose collections flow through the service."""
    BREB = "BREB"
    WASA = "WASA"
    DESCO = "DESCO"
    DPDC = "DPDC"


class CollectionKey(BaseModel):
    """Identifying fields used to locate a collection record."""
    client_id: int
    coll_from: str = Field(..., min_length=1)
    branch_code: Optional[str] = None
    bill_number: Optional[str] = None
    coll_date: Optional[date] = None


class CollectionRecord(BaseModel):
    """Internal bill-collection record."""
    model_config = ConfigDict(from_attributes=True)

    collection_id: int
    client_id: int
    coll_from: str
    coll_status_id: int
    branch_code: Optional[str] = None
    bill_number: Optional[str] = None
    amount: Optional[Decimal] = None
    coll_date: Optional[datetime] = None


class BillLink(BaseModel):
    """Gateway-side billing metadata for a collection."""
    model_config = ConfigDict(from_attributes=True)

    collection_id: int
    transaction_id: Optional[str] = None
    account_reference: Optional[str] = None


class SubmissionLog(BaseModel):
    """Log entry written when the payment was first submitted to the gateway."""
    model_config = ConfigDict(from_attributes=True)

    transaction_id: str
    reference_number: Optional[str] = None
    request_id: Optional[str] = None
    logged_at: Optional[datetime] = None

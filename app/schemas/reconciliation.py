"""
Reconciliation API Schemas

Request and listing models for the utility reconciliation endpoints.
JSON field names are camelCase on the wire.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.collection import ClientType, CollectionKey, CollectionRecord
from app.models.reconciliation import IssueClaim


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReconcileRequest(CamelModel):
    """Request schema for the reconcile endpoint"""

    client_id: int = Field(..., description="Utility client identifier")
    issue_id: int = Field(..., description="Issue the caller believes applies (1, 2 or 3)")
    coll_from: str = Field(..., description="Payer account the collection was taken from")
    client_type: ClientType = Field(ClientType.BREB, description="Utility biller")
    branch_code: Optional[str] = Field(None, max_length=10)
    bill_number: Optional[str] = Field(None, max_length=50)
    coll_date: Optional[date] = Field(None, description="Collection date, narrows the lookup")

    @field_validator("coll_from")
    @classmethod
    def validate_coll_from(cls, v):
        if not v or not v.strip():
            raise ValueError("CollFrom is required")
        return v.strip()

    @field_validator("client_type", mode="before")
    @classmethod
    def normalize_client_type(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("branch_code", "bill_number")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        return v.strip() or None

    def to_claim(self) -> IssueClaim:
        return IssueClaim(
            requested_issue_id=self.issue_id,
            client_type=self.client_type,
            key=CollectionKey(
                client_id=self.client_id,
                coll_from=self.coll_from,
                branch_code=self.branch_code,
                bill_number=self.bill_number,
                coll_date=self.coll_date,
            ),
        )


class CollectionResponse(CamelModel):
    """Collection as returned by the listing endpoint"""

    collection_id: int
    client_id: int
    branch_code: Optional[str] = None
    coll_from: str
    bill_number: Optional[str] = None
    amount: Optional[Decimal] = None
    coll_date: Optional[datetime] = None
    coll_status_id: int

    @classmethod
    def from_record(cls, record: CollectionRecord) -> "CollectionResponse":
        return cls(**record.model_dump())

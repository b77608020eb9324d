"""
Collaborator contracts consumed by the reconciliation service.

Stores raise on infrastructure faults. Gateway clients return None when the
call itself failed (transport error, timeout, open circuit, unreadable body).
"""
from typing import Optional, Protocol, runtime_checkable

from app.models.collection import BillLink, CollectionKey, CollectionRecord, SubmissionLog
from app.models.gateway import (
    DisputeRequest,
    DisputeResponse,
    PaymentStatusRequest,
    PaymentStatusResponse,
)


@runtime_checkable
class CollectionStore(Protocol):
    async def find(self, key: CollectionKey) -> Optional[CollectionRecord]:
        ...

    async def update(self, record: CollectionRecord) -> bool:
        """Finalize the record; True only if a row was actually changed."""
        ...


@runtime_checkable
class BillLinkStore(Protocol):
    async def find_by_collection(self, collection_id: int) -> Optional[BillLink]:
        ...


@runtime_checkable
class PaymentLogStore(Protocol):
    async def find_by_transaction(self, transaction_id: str) -> Optional[SubmissionLog]:
        ...


@runtime_checkable
class PaymentGatewayClient(Protocol):
    async def query_status(self, request: PaymentStatusRequest) -> Optional[PaymentStatusResponse]:
        ...


@runtime_checkable
class DisputeGatewayClient(Protocol):
    async def file_dispute(self, request: DisputeRequest) -> Optional[DisputeResponse]:
        ...


__all__ = [
    "CollectionStore",
    "BillLinkStore",
    "PaymentLogStore",
    "PaymentGatewayClient",
    "DisputeGatewayClient",
]

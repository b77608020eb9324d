"""
Models package for the Dispute Automation Service.
"""
from .collection import BillLink, ClientType, CollectionKey, CollectionRecord, SubmissionLog
from .reconciliation import IssueClaim, ReconciliationOutcome, ReconciliationResult

__all__ = [
    "BillLink",
    "ClientType",
    "CollectionKey",
    "CollectionRecord",
    "SubmissionLog",
    "IssueClaim",
    "ReconciliationOutcome",
    "ReconciliationResult",
]

"""Persistence layer: async SQLAlchemy session management and repositories."""

from app.database.collection_repository import CollectionRepository
from app.database.payment_log_repository import BillLinkRepository, PaymentLogRepository
from app.database.session import check_connection, close_db, get_db, init_db

__all__ = [
    "CollectionRepository",
    "BillLinkRepository",
    "PaymentLogRepository",
    "check_connection",
    "close_db",
    "get_db",
    "init_db",
]

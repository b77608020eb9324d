"""
Dependency injection for FastAPI application.

Provides factory functions wiring repositories, the gateway client and the
reconciliation orchestrator for each request.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.database import BillLinkRepository, CollectionRepository, PaymentLogRepository, get_db
from app.services.gateway import PaymentGateway
from app.services.reconciliation_service import ReconciliationOrchestrator


@lru_cache()
def get_payment_gateway() -> PaymentGateway:
    """Shared gateway client; one circuit breaker per process."""
    return PaymentGateway(get_settings())


def get_collection_repository(db: AsyncSession = Depends(get_db)) -> CollectionRepository:
    return CollectionRepository(db)


def get_reconciliation_orchestrator(
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ReconciliationOrchestrator:
    """
    Build the orchestrator for one request.

    All three stores share the request session, so the collection update
    commits or rolls back with the request.
    """
    return ReconciliationOrchestrator(
        collection_store=CollectionRepository(db),
        bill_link_store=BillLinkRepository(db),
        payment_log_store=PaymentLogRepository(db),
        payment_gateway=gateway,
        dispute_gateway=gateway,
    )

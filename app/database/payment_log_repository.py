"""
Bill link and payment submit log repositories.
"""

from datetime import date
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DatabaseError
from app.database.collection_repository import day_bounds
from app.database.models import BillLink as BillLinkRow
from app.database.models import PaymentSubmitLog
from app.models.collection import BillLink, SubmissionLog

logger = structlog.get_logger(__name__)


class BillLinkRepository:
    """Reads the gateway billing metadata recorded for a collection."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_collection(self, collection_id: int) -> Optional[BillLink]:
        stmt = (
            select(BillLinkRow)
            .where(BillLinkRow.collection_id == collection_id)
            .order_by(BillLinkRow.id.desc())
            .limit(1)
        )
        try:
            row = (await self.db.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logger.error("Failed to get bill link", collection_id=collection_id, error=str(e), exc_info=True)
            raise DatabaseError(f"Failed to get bill link: {e}", operation="find_bill_link")

        return BillLink.model_validate(row) if row is not None else None


class PaymentLogRepository:
    """Reads the payment submit log to recover the gateway reference number."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_transaction(self, transaction_id: str, day: Optional[date] = None) -> Optional[SubmissionLog]:
        """
        Most recent submit log entry for the transaction logged on one day.

        Args:
            transaction_id: Payer transaction id from the bill link
            day: Calendar day to search, defaults to the local current date
        """
        start, end = day_bounds(day or date.today())
        stmt = (
            select(PaymentSubmitLog)
            .where(
                PaymentSubmitLog.transaction_id == transaction_id,
                PaymentSubmitLog.logged_at >= start,
                PaymentSubmitLog.logged_at < end,
            )
            .order_by(PaymentSubmitLog.logged_at.desc(), PaymentSubmitLog.id.desc())
            .limit(1)
        )
        try:
            row = (await self.db.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to get payment submit log",
                transaction_id=transaction_id,
                error=str(e),
                exc_info=True,
            )
            raise DatabaseError(f"Failed to get payment submit log: {e}", operation="find_submit_log")

        return SubmissionLog.model_validate(row) if row is not None else None

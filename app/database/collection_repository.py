"""
Collection repository.

Implements the collection store used by reconciliation and the query
behind the today's-collections listing.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import DatabaseError
from app.database.models import Collection
from app.models.collection import CollectionKey, CollectionRecord

logger = structlog.get_logger(__name__)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open [start, end) datetime range covering one calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class CollectionRepository:
    """
    Repository for collection records.

    The update is a compare-and-set on the pending status: only one caller
    can move a given collection to settled.
    """

    def __init__(
        self,
        db: AsyncSession,
        pending_status_id: Optional[int] = None,
        settled_status_id: Optional[int] = None,
    ):
        settings = get_settings()
        self.db = db
        self.pending_status_id = (
            settings.collection_pending_status_id if pending_status_id is None else pending_status_id
        )
        self.settled_status_id = (
            settings.collection_settled_status_id if settled_status_id is None else settled_status_id
        )

    async def find(self, key: CollectionKey) -> Optional[CollectionRecord]:
        """
        Find the collection matching the key.

        Optional key fields only narrow the search when set. When several
        rows match, the most recent collection wins.

        Raises:
            DatabaseError: If the query fails
        """
        stmt = select(Collection).where(
            Collection.client_id == key.client_id,
            Collection.coll_from == key.coll_from,
        )
        if key.branch_code:
            stmt = stmt.where(Collection.branch_code == key.branch_code)
        if key.bill_number:
            stmt = stmt.where(Collection.bill_number == key.bill_number)
        if key.coll_date:
            start, end = day_bounds(key.coll_date)
            stmt = stmt.where(Collection.coll_date >= start, Collection.coll_date < end)
        stmt = stmt.order_by(Collection.coll_date.desc(), Collection.collection_id.desc()).limit(1)

        try:
            row = (await self.db.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to find collection",
                client_id=key.client_id,
                coll_from=key.coll_from,
                error=str(e),
                exc_info=True,
            )
            raise DatabaseError(f"Failed to find collection: {e}", operation="find_collection")

        return CollectionRecord.model_validate(row) if row is not None else None

    async def update(self, record: CollectionRecord) -> bool:
        """
        Mark the collection as settled and commit.

        The result reflects committed state: a failed commit rolls back and
        raises instead of reporting the row as changed.

        Returns:
            True only if this call changed the row

        Raises:
            DatabaseError: If the update or its commit fails
        """
        stmt = (
            update(Collection)
            .where(
                Collection.collection_id == record.collection_id,
                Collection.coll_status_id == self.pending_status_id,
            )
            .values(coll_status_id=self.settled_status_id, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Failed to update collection",
                collection_id=record.collection_id,
                error=str(e),
                exc_info=True,
            )
            raise DatabaseError(
                f"Failed to update collection: {e}",
                operation="update_collection",
                collection_id=record.collection_id,
            )

        updated = result.rowcount > 0
        logger.info(
            "Collection update executed",
            collection_id=record.collection_id,
            rows_affected=result.rowcount,
            new_status_id=self.settled_status_id,
        )
        return updated

    async def list_today(
        self,
        branch_code: str,
        client_id: int,
        coll_status_ids: Sequence[int],
        today: Optional[date] = None,
    ) -> List[CollectionRecord]:
        """
        List collections taken today at a branch for a client.

        Args:
            branch_code: Branch that took the collections
            client_id: Utility client id
            coll_status_ids: Status ids to include
            today: Calendar day to list, defaults to the local current date

        Raises:
            DatabaseError: If the query fails
        """
        start, end = day_bounds(today or date.today())
        stmt = (
            select(Collection)
            .where(
                Collection.branch_code == branch_code,
                Collection.client_id == client_id,
                Collection.coll_status_id.in_(list(coll_status_ids)),
                Collection.coll_date >= start,
                Collection.coll_date < end,
            )
            .order_by(Collection.coll_date, Collection.collection_id)
        )
        try:
            rows = (await self.db.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list today's collections",
                branch_code=branch_code,
                client_id=client_id,
                error=str(e),
                exc_info=True,
            )
            raise DatabaseError(f"Failed to list collections: {e}", operation="list_today")

        return [CollectionRecord.model_validate(row) for row in rows]

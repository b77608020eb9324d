"""
ORM tables backing the collection, bill link and payment submit log stores.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all tables."""
    pass


class Collection(Base):
    """Bill collection taken at a branch for a utility client."""

    __tablename__ = "collections"

    collection_id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, nullable=False)
    branch_code = Column(String(10), nullable=True)
    coll_from = Column(String(50), nullable=False)
    bill_number = Column(String(50), nullable=True)
    amount = Column(Numeric(18, 2), nullable=True)
    coll_date = Column(DateTime, nullable=False, server_default=func.now())
    coll_status_id = Column(Integer, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_collections_lookup", "client_id", "coll_from", "bill_number"),
        Index("idx_collections_branch_date", "branch_code", "coll_date"),
    )

    def __repr__(self):
        return f"<Collection(collection_id={self.collection_id}, client_id={self.client_id}, status={self.coll_status_id})>"


class BillLink(Base):
    """Gateway billing metadata recorded against a collection."""

    __tablename__ = "bill_links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection_id = Column(Integer, ForeignKey("collections.collection_id"), nullable=False, index=True)
    transaction_id = Column(String(100), nullable=True)
    account_reference = Column(String(50), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class PaymentSubmitLog(Base):
    """Request/response log written when a payment is submitted to the gateway."""

    __tablename__ = "payment_submit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String(100), nullable=False, index=True)
    reference_number = Column(String(100), nullable=True)
    request_id = Column(String(100), nullable=True)
    logged_at = Column(DateTime, nullable=False, server_default=func.now())

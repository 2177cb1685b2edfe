import enum
from sqlalchemy import Column, DateTime, Integer, String, Text, ForeignKey, Enum, Index, JSON
from sqlalchemy.orm import relationship
from datahub.core.database import Base
from datahub.models.base import TimestampMixin, enum_values


class TransactionStatus(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


class Network(str, enum.Enum):
    MTN = "MTN"
    TELECEL = "TELECEL"
    AIRTELTIGO = "AIRTELTIGO"


TERMINAL_STATUSES = frozenset({TransactionStatus.SUCCESS, TransactionStatus.FAILED})


class Transaction(Base, TimestampMixin):
    """
    One data bundle order.

    `processing` covers both "accepted, not yet placed" and "placed, awaiting
    delivery"; the two are told apart by provider_order_id / provider_reference
    (see datahub.services.fulfillment.fulfillment_phase).
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    reference = Column(String(64), unique=True, nullable=False, index=True)
    bundle_id = Column(Integer, ForeignKey("bundles.id"), nullable=True)
    network = Column(Enum(Network, values_callable=enum_values), nullable=False)
    data_amount = Column(String(32), nullable=False)
    recipient_phone = Column(String(32), nullable=False)
    status = Column(Enum(TransactionStatus, values_callable=enum_values), nullable=False, default=TransactionStatus.PROCESSING)

    provider_order_id = Column(String(128), nullable=True, index=True)
    provider_reference = Column(String(128), nullable=True, index=True)
    retries = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    # Earliest time the queue may retry a failed submission; null means immediately.
    next_attempt_at = Column(DateTime(timezone=True), nullable=True)

    # Append-only provider snapshots; always merged, never replaced.
    meta = Column("metadata", JSON, nullable=True)

    bundle = relationship("Bundle")


Index("ix_transactions_status_created", Transaction.status, Transaction.created_at)

import uuid
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Enum, JSON, func
from sqlalchemy.dialects.postgresql import UUID
from marketplace.core.db import Base
import enum

class TransactionType(str, enum.Enum):
    PURCHASE = "purchase"
    SUBSCRIPTION = "subscription"
    PAYOUT = "payout"
    REFUND = "refund"
    AFFILIATE = "affiliate"

class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"

class Transaction(Base):
    """Append-only ledger of money movements. Only ``status`` may be corrected later."""
    __tablename__ = "transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    type = Column(Enum(TransactionType), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String, default="USD", nullable=False)
    payment_method = Column(String, nullable=True)
    payment_id = Column(String, nullable=True)
    status = Column(Enum(TransactionStatus), nullable=False)

    metadata_json = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

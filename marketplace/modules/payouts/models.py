import uuid
from sqlalchemy import Column, String, Boolean, Numeric, DateTime, ForeignKey, Enum, func
from sqlalchemy.dialects.postgresql import UUID
from marketplace.core.db import Base
import enum

class PayoutStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class PayoutMethod(str, enum.Enum):
    BANK = "bank"
    PAYPAL = "paypal"
    TON = "ton"

class Payout(Base):
    __tablename__ = "payouts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    fee = Column(Numeric(12, 2), default=0, nullable=False)
    method = Column(Enum(PayoutMethod), nullable=False)
    destination = Column(String, nullable=False) # IBAN, PayPal email or wallet address
    instant = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(PayoutStatus), default=PayoutStatus.PENDING, nullable=False)

    requested_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

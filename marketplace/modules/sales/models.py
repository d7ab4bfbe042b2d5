import uuid
from sqlalchemy import Column, String, Numeric, DateTime, func, ForeignKey, Enum, Index, text
from sqlalchemy.dialects.postgresql import UUID
from marketplace.core.db import Base
import enum

class PurchaseStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"

class Purchase(Base):
    __tablename__ = "purchases"
    __table_args__ = (
        # At most one completed purchase per buyer and content item
        Index(
            "uq_purchases_buyer_content_completed",
            "buyer_id",
            "content_id",
            unique=True,
            postgresql_where=text("status = 'COMPLETED'"),
            sqlite_where=text("status = 'COMPLETED'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    buyer_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    content_id = Column(UUID(as_uuid=True), ForeignKey("content.id"), nullable=False)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    platform_commission = Column(Numeric(12, 2), nullable=False)
    creator_earnings = Column(Numeric(12, 2), nullable=False)
    currency = Column(String, default="USD", nullable=False)

    payment_method = Column(String, nullable=False)
    payment_id = Column(String, nullable=True) # Provider reference
    idempotency_key = Column(String, nullable=False)
    status = Column(Enum(PurchaseStatus), default=PurchaseStatus.PENDING, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

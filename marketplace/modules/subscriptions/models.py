import uuid
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, Enum, Index, func, text
from sqlalchemy.dialects.postgresql import UUID
from marketplace.core.db import Base
import enum

class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELED = "canceled"

class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        # One active subscription per subscriber and creator
        Index(
            "uq_subscriptions_subscriber_creator_active",
            "subscriber_id",
            "creator_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subscriber_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    status = Column(Enum(SubscriptionStatus), default=SubscriptionStatus.ACTIVE, nullable=False)
    monthly_price = Column(Numeric(12, 2), nullable=False)

    start_date = Column(DateTime(timezone=True), nullable=False)
    expiration_date = Column(DateTime(timezone=True), nullable=False)
    canceled_at = Column(DateTime(timezone=True), nullable=True)

    total_paid = Column(Numeric(14, 2), default=0, nullable=False)
    renewal_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

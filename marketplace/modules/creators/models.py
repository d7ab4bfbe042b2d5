import uuid
from sqlalchemy import Column, Boolean, Integer, DateTime, ForeignKey, Enum, Numeric, func
from sqlalchemy.dialects.postgresql import UUID
from marketplace.core.db import Base
import enum

class CreatorStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"

class CreatorProfile(Base):
    __tablename__ = "creator_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, unique=True)
    status = Column(Enum(CreatorStatus), default=CreatorStatus.PENDING, nullable=False)

    # NULL means the platform default rate applies
    commission_rate = Column(Numeric(5, 4), nullable=True)

    subscription_enabled = Column(Boolean, default=False, nullable=False)
    subscription_price = Column(Numeric(12, 2), nullable=True)

    # Aggregates, only ever changed with SQL-side increments by the settlement flows
    total_revenue = Column(Numeric(14, 2), default=0, nullable=False)
    total_subscribers = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

import uuid
from sqlalchemy import Column, String, Integer, DateTime, func, Enum, ForeignKey, Text, Numeric, JSON
from sqlalchemy.dialects.postgresql import UUID
from marketplace.core.db import Base
import enum

class PricingModel(str, enum.Enum):
    FREE = "free"
    PURCHASE = "purchase"
    SUBSCRIPTION = "subscription"
    BOTH = "both"

    @property
    def allows_purchase(self) -> bool:
        return self in (PricingModel.PURCHASE, PricingModel.BOTH)

    @property
    def allows_subscription(self) -> bool:
        return self in (PricingModel.SUBSCRIPTION, PricingModel.BOTH)

class ContentStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    SCHEDULED = "scheduled"
    DELETED = "deleted"

class ContentVisibility(str, enum.Enum):
    PUBLIC = "public"
    UNLISTED = "unlisted"
    SUBSCRIBERS_ONLY = "subscribers_only"

class Content(Base):
    __tablename__ = "content"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    tags = Column(JSON, default=list, nullable=True)

    pricing_model = Column(Enum(PricingModel), default=PricingModel.FREE, nullable=False)
    price = Column(Numeric(12, 2), nullable=True) # Required for purchase / both
    status = Column(Enum(ContentStatus), default=ContentStatus.DRAFT, nullable=False)
    visibility = Column(Enum(ContentVisibility), default=ContentVisibility.PUBLIC, nullable=False)

    purchase_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    published_at = Column(DateTime(timezone=True), nullable=True)

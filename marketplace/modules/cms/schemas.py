from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field
from marketplace.modules.cms.models import ContentStatus, ContentVisibility, PricingModel

class ContentCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = []
    pricing_model: PricingModel = PricingModel.FREE
    price: Optional[Decimal] = None
    visibility: ContentVisibility = ContentVisibility.PUBLIC
    publish: bool = False

class ContentRead(BaseModel):
    id: UUID
    creator_id: UUID
    title: str
    description: Optional[str]
    category: Optional[str] = None
    tags: Optional[List[str]] = []
    pricing_model: PricingModel
    price: Optional[Decimal]
    status: ContentStatus
    visibility: ContentVisibility
    purchase_count: int
    created_at: Optional[datetime] = None
    published_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ContentDetail(ContentRead):
    has_access: bool = False

class ContentListResponse(BaseModel):
    items: List[ContentRead]
    total: int
    page: int
    size: int
    pages: int

class AccessResponse(BaseModel):
    access: bool

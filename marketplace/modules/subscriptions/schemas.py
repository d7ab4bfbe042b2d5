from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel
from marketplace.modules.subscriptions.models import SubscriptionStatus

class SubscriptionCreate(BaseModel):
    payment_method_ref: str
    payment_method: str = "card"

class SubscriptionRenew(SubscriptionCreate):
    pass

class SubscriptionRead(BaseModel):
    id: UUID
    subscriber_id: UUID
    creator_id: UUID
    status: SubscriptionStatus
    effective_status: Optional[SubscriptionStatus] = None
    has_access: bool = False
    monthly_price: Decimal
    start_date: datetime
    expiration_date: datetime
    canceled_at: Optional[datetime] = None
    total_paid: Decimal
    renewal_count: int

    class Config:
        from_attributes = True

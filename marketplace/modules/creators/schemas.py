from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel
from marketplace.modules.creators.models import CreatorStatus

class SubscriptionSettingsUpdate(BaseModel):
    subscription_enabled: bool
    subscription_price: Optional[Decimal] = None

class CreatorProfileRead(BaseModel):
    id: UUID
    user_id: UUID
    status: CreatorStatus
    commission_rate: Optional[Decimal]
    subscription_enabled: bool
    subscription_price: Optional[Decimal]
    total_revenue: Decimal
    total_subscribers: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class EarningsSummary(BaseModel):
    total_revenue: Decimal
    paid_out: Decimal
    available_balance: Decimal
    total_subscribers: int
    commission_rate: Decimal

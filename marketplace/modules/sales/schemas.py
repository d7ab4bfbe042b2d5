from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel
from marketplace.modules.sales.models import PurchaseStatus

class PurchaseRequest(BaseModel):
    payment_method_ref: str
    payment_method: str = "card"

class PurchaseRead(BaseModel):
    id: UUID
    buyer_id: UUID
    content_id: UUID
    creator_id: UUID
    amount: Decimal
    platform_commission: Decimal
    creator_earnings: Decimal
    currency: str
    payment_method: str
    payment_id: Optional[str]
    status: PurchaseStatus
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel
from marketplace.modules.payouts.models import PayoutMethod, PayoutStatus

class PayoutCreate(BaseModel):
    amount: Decimal
    method: PayoutMethod
    destination: str
    instant: bool = False

class PayoutRead(BaseModel):
    id: UUID
    creator_id: UUID
    amount: Decimal
    fee: Decimal
    method: PayoutMethod
    destination: str
    instant: bool
    status: PayoutStatus
    requested_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class BalanceRead(BaseModel):
    available_balance: Decimal

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel, Field
from marketplace.modules.ledger.models import TransactionStatus, TransactionType

class TransactionRead(BaseModel):
    id: UUID
    type: TransactionType
    amount: Decimal
    currency: str
    payment_method: Optional[str]
    payment_id: Optional[str]
    status: TransactionStatus
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

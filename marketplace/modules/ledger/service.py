from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.modules.ledger import models

def record_transaction(
    db: AsyncSession,
    user_id: UUID,
    type: models.TransactionType,
    amount: Decimal,
    status: models.TransactionStatus,
    payment_method: Optional[str] = None,
    payment_id: Optional[str] = None,
    currency: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> models.Transaction:
    # Joins the caller's unit of work; the settlement flow commits.
    entry = models.Transaction(
        user_id=user_id,
        type=type,
        amount=amount,
        currency=currency or settings.DEFAULT_CURRENCY,
        payment_method=payment_method,
        payment_id=payment_id,
        status=status,
        metadata_json=metadata
    )
    db.add(entry)
    return entry

async def list_transactions(db: AsyncSession, user_id: UUID, limit: int = 50):
    result = await db.execute(
        select(models.Transaction)
        .where(models.Transaction.user_id == user_id)
        .order_by(models.Transaction.created_at.desc())
        .limit(limit)
    )
    return result.scalars().all()

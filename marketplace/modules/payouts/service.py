import logging
import uuid
from decimal import Decimal
from typing import Union
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.config import settings
from marketplace.core.errors import BelowMinimumPayout, InsufficientBalance, InvalidArgument, NotFound
from marketplace.modules.creators import service as creators_service
from marketplace.modules.ledger import service as ledger_service
from marketplace.modules.ledger.models import TransactionStatus, TransactionType
from marketplace.modules.payouts import models
from marketplace.modules.sales.commission import round_money, to_decimal

logger = logging.getLogger(__name__)

def payout_fee(amount: Decimal, instant: bool) -> Decimal:
    if not instant:
        return Decimal("0.00")
    return round_money(amount * to_decimal(settings.INSTANT_PAYOUT_FEE_RATE, "fee rate"))

async def paid_out_total(db: AsyncSession, creator_id: UUID) -> Decimal:
    """Sum of every payout that has not failed; pending ones are already committed funds."""
    result = await db.execute(
        select(func.coalesce(func.sum(models.Payout.amount), 0))
        .where(
            models.Payout.creator_id == creator_id,
            models.Payout.status != models.PayoutStatus.FAILED
        )
    )
    return to_decimal(result.scalar() or 0)

async def available_balance(db: AsyncSession, creator_id: UUID) -> Decimal:
    profile = await creators_service.get_creator_profile(db, creator_id)
    return to_decimal(profile.total_revenue) - await paid_out_total(db, creator_id)

async def request_payout(
    db: AsyncSession,
    creator_id: UUID,
    amount: Union[Decimal, int, float, str],
    method: models.PayoutMethod,
    destination: str,
    instant: bool = False
) -> models.Payout:
    amount = to_decimal(amount, "amount")
    if amount < settings.MINIMUM_PAYOUT:
        raise BelowMinimumPayout(f"Minimum payout is ${settings.MINIMUM_PAYOUT}")

    if amount != round_money(amount):
        raise InvalidArgument("amount must have at most two decimal places")

    if not destination or not destination.strip():
        raise InvalidArgument("destination is required")

    # Concurrent requests for one creator queue here, so each sees the payouts committed before it
    try:
        await creators_service.lock_creator_profile(db, creator_id)
        if settings.ENFORCE_PAYOUT_BALANCE:
            balance = await available_balance(db, creator_id)
            if amount > balance:
                raise InsufficientBalance(f"Available balance is ${balance}")
    except (NotFound, InsufficientBalance):
        await db.rollback()
        raise

    fee = payout_fee(amount, instant)
    payout = models.Payout(
        id=uuid.uuid4(),
        creator_id=creator_id,
        amount=amount,
        fee=fee,
        method=method,
        destination=destination.strip(),
        instant=instant,
        status=models.PayoutStatus.PENDING
    )
    db.add(payout)
    ledger_service.record_transaction(
        db,
        user_id=creator_id,
        type=TransactionType.PAYOUT,
        amount=amount,
        status=TransactionStatus.PENDING,
        payment_method=method.value,
        metadata={"payout_id": str(payout.id), "fee": str(fee), "instant": instant},
    )
    await db.commit()
    await db.refresh(payout)

    logger.info("Payout %s requested by %s: %s via %s (fee %s)", payout.id, creator_id, amount, method.value, fee)
    return payout

async def list_payouts(db: AsyncSession, creator_id: UUID):
    result = await db.execute(
        select(models.Payout)
        .where(models.Payout.creator_id == creator_id)
        .order_by(models.Payout.requested_at.desc())
    )
    return result.scalars().all()

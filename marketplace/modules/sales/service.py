import logging
import uuid
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.clock import utcnow
from marketplace.core.config import settings
from marketplace.core.errors import (
    AlreadyPurchased,
    InvalidPricingModel,
    MissingPrice,
    NotFound,
    PaymentFailed,
)
from marketplace.modules.access.service import find_completed_purchase
from marketplace.modules.cms.models import Content, ContentStatus, PricingModel
from marketplace.modules.creators import service as creators_service
from marketplace.modules.ledger import service as ledger_service
from marketplace.modules.ledger.models import TransactionStatus, TransactionType
from marketplace.modules.payments.gateway import PaymentGateway, PaymentProviderError, PaymentStatus
from marketplace.modules.sales import models
from marketplace.modules.sales.commission import calculate_commission, resolve_commission_rate

logger = logging.getLogger(__name__)

PURCHASE_STATUS_BY_PAYMENT = {
    PaymentStatus.SUCCEEDED: models.PurchaseStatus.COMPLETED,
    PaymentStatus.PENDING: models.PurchaseStatus.PENDING,
    PaymentStatus.FAILED: models.PurchaseStatus.FAILED,
}

TRANSACTION_STATUS_BY_PURCHASE = {
    models.PurchaseStatus.COMPLETED: TransactionStatus.COMPLETED,
    models.PurchaseStatus.PENDING: TransactionStatus.PENDING,
    models.PurchaseStatus.FAILED: TransactionStatus.FAILED,
}

async def _count_attempts(db: AsyncSession, buyer_id: UUID, content_id: UUID) -> int:
    result = await db.execute(
        select(func.count(models.Purchase.id))
        .where(models.Purchase.buyer_id == buyer_id, models.Purchase.content_id == content_id)
    )
    return result.scalar() or 0

async def purchase_content(
    db: AsyncSession,
    gateway: PaymentGateway,
    buyer_id: UUID,
    content_id: UUID,
    payment_method_ref: str,
    payment_method: str = "card",
    currency: Optional[str] = None
) -> models.Purchase:
    currency = currency or settings.DEFAULT_CURRENCY

    # 1. Content must be sellable
    content = await db.get(Content, content_id)
    if not content or content.status == ContentStatus.DELETED:
        raise NotFound("Content not found")

    if content.pricing_model == PricingModel.FREE:
        raise InvalidPricingModel("This content is free")
    if content.pricing_model == PricingModel.SUBSCRIPTION:
        raise InvalidPricingModel("This content requires a subscription")

    # 2. Price
    if content.price is None or Decimal(content.price) < settings.MINIMUM_PURCHASE_PRICE:
        raise MissingPrice("Content price not set")

    # 3. Duplicate guard; the partial unique index backs this up under races
    if await find_completed_purchase(db, buyer_id, content_id):
        raise AlreadyPurchased("Content already purchased")

    # 4. Commission split
    creator_id = content.creator_id
    profile = await creators_service.find_creator_profile(db, creator_id)
    rate = resolve_commission_rate(profile.commission_rate if profile else None)
    split = calculate_commission(Decimal(content.price), rate)

    # 5. Capture; nothing is persisted if the provider errors out
    attempt = await _count_attempts(db, buyer_id, content_id) + 1
    idempotency_key = f"purchase:{buyer_id}:{content_id}:{attempt}"
    try:
        payment = await gateway.capture(
            amount=split.gross,
            currency=currency,
            payment_method_ref=payment_method_ref,
            idempotency_key=idempotency_key,
            metadata={"buyer_id": buyer_id, "content_id": content_id, "creator_id": creator_id},
        )
    except PaymentProviderError as e:
        logger.warning("Purchase capture failed for %s: %s", idempotency_key, e)
        raise PaymentFailed(f"Payment failed: {e}")

    status = PURCHASE_STATUS_BY_PAYMENT[payment.status]

    # 6. Purchase row, counters and ledger entry commit together or not at all
    purchase = models.Purchase(
        id=uuid.uuid4(),
        buyer_id=buyer_id,
        content_id=content_id,
        creator_id=creator_id,
        amount=split.gross,
        platform_commission=split.platform_commission,
        creator_earnings=split.creator_earnings,
        currency=currency,
        payment_method=payment_method,
        payment_id=payment.id,
        idempotency_key=idempotency_key,
        status=status,
        completed_at=utcnow() if status == models.PurchaseStatus.COMPLETED else None
    )
    try:
        db.add(purchase)

        if status == models.PurchaseStatus.COMPLETED:
            await db.execute(
                update(Content)
                .where(Content.id == content_id)
                .values(purchase_count=Content.purchase_count + 1)
                .execution_options(synchronize_session=False)
            )
            await creators_service.increment_creator_totals(db, creator_id, revenue=split.creator_earnings)

        ledger_service.record_transaction(
            db,
            user_id=buyer_id,
            type=TransactionType.PURCHASE,
            amount=split.gross,
            status=TRANSACTION_STATUS_BY_PURCHASE[status],
            payment_method=payment_method,
            payment_id=payment.id,
            currency=currency,
            metadata={
                "content_id": str(content_id),
                "purchase_id": str(purchase.id),
                "creator_id": str(creator_id),
                "platform_commission": str(split.platform_commission),
                "creator_earnings": str(split.creator_earnings),
            },
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.critical(
            "Captured payment %s for %s but a completed purchase already exists; manual reconciliation required",
            payment.id, idempotency_key
        )
        raise AlreadyPurchased("Content already purchased")
    except Exception:
        await db.rollback()
        logger.critical(
            "Captured payment %s for %s could not be recorded; manual reconciliation required",
            payment.id, idempotency_key, exc_info=True
        )
        raise

    if status == models.PurchaseStatus.FAILED:
        logger.warning("Purchase %s declined by provider (payment %s)", purchase.id, payment.id)
        raise PaymentFailed(f"Payment failed: {payment.message or 'payment was declined'}")

    await db.refresh(purchase)
    logger.info(
        "Purchase %s %s: %s %s (commission %s, earnings %s)",
        purchase.id, status.value, split.gross, currency, split.platform_commission, split.creator_earnings
    )
    return purchase

async def list_purchases(db: AsyncSession, buyer_id: UUID):
    result = await db.execute(
        select(models.Purchase)
        .where(models.Purchase.buyer_id == buyer_id)
        .order_by(models.Purchase.created_at.desc())
    )
    return result.scalars().all()

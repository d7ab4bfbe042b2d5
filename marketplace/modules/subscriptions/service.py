import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.clock import as_utc, utcnow
from marketplace.core.config import settings
from marketplace.core.errors import (
    AlreadySubscribed,
    InvalidArgument,
    NotActive,
    NotFound,
    PaymentFailed,
    SubscriptionNotOffered,
    Unauthorized,
)
from marketplace.modules.access.service import ENTITLING_STATUSES, find_entitling_subscription
from marketplace.modules.creators import service as creators_service
from marketplace.modules.ledger import service as ledger_service
from marketplace.modules.ledger.models import TransactionStatus, TransactionType
from marketplace.modules.payments.gateway import PaymentGateway, PaymentProviderError, PaymentResult, PaymentStatus
from marketplace.modules.sales.commission import calculate_commission, resolve_commission_rate
from marketplace.modules.subscriptions import models

logger = logging.getLogger(__name__)

def subscription_period() -> timedelta:
    return timedelta(days=settings.SUBSCRIPTION_PERIOD_DAYS)

def effective_status(sub: models.Subscription, now: Optional[datetime] = None) -> models.SubscriptionStatus:
    """An active row past its expiration date reads as expired."""
    now = now or utcnow()
    if sub.status == models.SubscriptionStatus.ACTIVE and as_utc(sub.expiration_date) < now:
        return models.SubscriptionStatus.EXPIRED
    return sub.status

def is_entitled(sub: models.Subscription, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return sub.status in ENTITLING_STATUSES and as_utc(sub.expiration_date) >= now

async def _expire_stale(db: AsyncSession, subscriber_id: UUID, creator_id: UUID, now: datetime) -> None:
    # Materialize lazily-expired rows so the active-row unique index admits a new one
    await db.execute(
        update(models.Subscription)
        .where(
            models.Subscription.subscriber_id == subscriber_id,
            models.Subscription.creator_id == creator_id,
            models.Subscription.status == models.SubscriptionStatus.ACTIVE,
            models.Subscription.expiration_date < now
        )
        .values(status=models.SubscriptionStatus.EXPIRED)
        .execution_options(synchronize_session=False)
    )

async def _capture_or_fail(
    gateway: PaymentGateway,
    amount: Decimal,
    payment_method_ref: str,
    idempotency_key: str,
    metadata: dict
) -> PaymentResult:
    try:
        payment = await gateway.capture(
            amount=amount,
            currency=settings.DEFAULT_CURRENCY,
            payment_method_ref=payment_method_ref,
            idempotency_key=idempotency_key,
            metadata=metadata,
        )
    except PaymentProviderError as e:
        logger.warning("Subscription capture failed for %s: %s", idempotency_key, e)
        raise PaymentFailed(f"Subscription payment failed: {e}")

    if payment.status == PaymentStatus.PENDING:
        # Money may still move; nothing is recorded locally
        logger.critical(
            "Subscription payment %s for %s is pending and was not recorded; manual reconciliation required",
            payment.id, idempotency_key
        )
    if payment.status != PaymentStatus.SUCCEEDED:
        raise PaymentFailed(f"Subscription payment failed: {payment.message or 'payment not successful'}")
    return payment

async def create_subscription(
    db: AsyncSession,
    gateway: PaymentGateway,
    subscriber_id: UUID,
    creator_id: UUID,
    payment_method_ref: str,
    payment_method: str = "card",
    now: Optional[datetime] = None
) -> models.Subscription:
    """
    Charges the first month and opens a 30-day period.

    The creator's ``total_revenue`` grows by the monthly price net of the
    platform commission, the same way purchases credit it, so revenue stays
    comparable with payouts. Renewals credit the same way.
    """
    now = now or utcnow()

    if subscriber_id == creator_id:
        raise InvalidArgument("Cannot subscribe to yourself")

    profile = await creators_service.find_creator_profile(db, creator_id)
    if not profile:
        raise NotFound("Creator not found")
    if not profile.subscription_enabled:
        raise SubscriptionNotOffered("Creator does not offer subscriptions")
    if not profile.subscription_price:
        raise SubscriptionNotOffered("Subscription price not set")

    if await find_entitling_subscription(db, subscriber_id, creator_id, now=now):
        raise AlreadySubscribed("Already subscribed to this creator")

    monthly_price = Decimal(profile.subscription_price)
    split = calculate_commission(monthly_price, resolve_commission_rate(profile.commission_rate))

    attempt = (await db.execute(
        select(func.count(models.Subscription.id))
        .where(models.Subscription.subscriber_id == subscriber_id, models.Subscription.creator_id == creator_id)
    )).scalar() or 0
    idempotency_key = f"subscription:{subscriber_id}:{creator_id}:{attempt + 1}:{payment_method_ref}"

    payment = await _capture_or_fail(
        gateway, monthly_price, payment_method_ref, idempotency_key,
        {"subscriber_id": subscriber_id, "creator_id": creator_id, "type": "subscription"}
    )

    sub = models.Subscription(
        id=uuid.uuid4(),
        subscriber_id=subscriber_id,
        creator_id=creator_id,
        status=models.SubscriptionStatus.ACTIVE,
        monthly_price=monthly_price,
        start_date=now,
        expiration_date=now + subscription_period(),
        total_paid=monthly_price,
        renewal_count=0
    )
    try:
        await _expire_stale(db, subscriber_id, creator_id, now)
        db.add(sub)
        await creators_service.increment_creator_totals(
            db, creator_id, revenue=split.creator_earnings, subscribers=1
        )
        ledger_service.record_transaction(
            db,
            user_id=subscriber_id,
            type=TransactionType.SUBSCRIPTION,
            amount=monthly_price,
            status=TransactionStatus.COMPLETED,
            payment_method=payment_method,
            payment_id=payment.id,
            metadata={
                "subscription_id": str(sub.id),
                "creator_id": str(creator_id),
                "platform_commission": str(split.platform_commission),
                "creator_earnings": str(split.creator_earnings),
            },
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.critical(
            "Captured payment %s for %s but an active subscription already exists; manual reconciliation required",
            payment.id, idempotency_key
        )
        raise AlreadySubscribed("Already subscribed to this creator")
    except Exception:
        await db.rollback()
        logger.critical(
            "Captured payment %s for %s could not be recorded; manual reconciliation required",
            payment.id, idempotency_key, exc_info=True
        )
        raise

    await db.refresh(sub)
    logger.info("Subscription %s created: %s -> %s until %s", sub.id, subscriber_id, creator_id, sub.expiration_date)
    return sub

async def get_subscription(db: AsyncSession, subscription_id: UUID) -> models.Subscription:
    sub = await db.get(models.Subscription, subscription_id)
    if not sub:
        raise NotFound("Subscription not found")
    return sub

async def cancel_subscription(
    db: AsyncSession,
    subscription_id: UUID,
    user_id: UUID,
    now: Optional[datetime] = None
) -> models.Subscription:
    now = now or utcnow()
    sub = await get_subscription(db, subscription_id)

    if sub.subscriber_id != user_id:
        raise Unauthorized("Not authorized to cancel this subscription")
    if effective_status(sub, now) != models.SubscriptionStatus.ACTIVE:
        raise NotActive("Subscription is not active")

    # Access is kept until the current expiration date
    sub.status = models.SubscriptionStatus.CANCELED
    sub.canceled_at = now
    await db.commit()
    await db.refresh(sub)
    logger.info("Subscription %s canceled, access until %s", sub.id, sub.expiration_date)
    return sub

async def renew_subscription(
    db: AsyncSession,
    gateway: PaymentGateway,
    subscription_id: UUID,
    user_id: UUID,
    payment_method_ref: str,
    payment_method: str = "card",
    now: Optional[datetime] = None
) -> models.Subscription:
    now = now or utcnow()
    sub = await get_subscription(db, subscription_id)

    if sub.subscriber_id != user_id:
        raise Unauthorized("Not authorized to renew this subscription")

    subscriber_id, creator_id = sub.subscriber_id, sub.creator_id
    if await find_entitling_subscription(db, subscriber_id, creator_id, now=now, exclude_id=sub.id):
        raise AlreadySubscribed("Another subscription to this creator is still running")

    monthly_price = Decimal(sub.monthly_price)
    profile = await creators_service.find_creator_profile(db, creator_id)
    split = calculate_commission(monthly_price, resolve_commission_rate(profile.commission_rate if profile else None))

    renewal_count = sub.renewal_count
    idempotency_key = f"renewal:{sub.id}:{renewal_count + 1}:{payment_method_ref}"
    payment = await _capture_or_fail(
        gateway, monthly_price, payment_method_ref, idempotency_key,
        {"subscription_id": sub.id, "type": "renewal"}
    )

    try:
        await _expire_stale(db, subscriber_id, creator_id, now)
        # New period counts from now, never from the previous expiration.
        # Matching on the renewal count read above lets exactly one request apply renewal n.
        claimed = await db.execute(
            update(models.Subscription)
            .where(
                models.Subscription.id == sub.id,
                models.Subscription.renewal_count == renewal_count
            )
            .values(
                status=models.SubscriptionStatus.ACTIVE,
                expiration_date=now + subscription_period(),
                total_paid=models.Subscription.total_paid + monthly_price,
                renewal_count=models.Subscription.renewal_count + 1,
                canceled_at=None
            )
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise AlreadySubscribed("Subscription was already renewed")
        await creators_service.increment_creator_totals(db, creator_id, revenue=split.creator_earnings)
        ledger_service.record_transaction(
            db,
            user_id=subscriber_id,
            type=TransactionType.SUBSCRIPTION,
            amount=monthly_price,
            status=TransactionStatus.COMPLETED,
            payment_method=payment_method,
            payment_id=payment.id,
            metadata={
                "subscription_id": str(sub.id),
                "creator_id": str(creator_id),
                "renewal": True,
                "platform_commission": str(split.platform_commission),
                "creator_earnings": str(split.creator_earnings),
            },
        )
        await db.commit()
    except AlreadySubscribed:
        await db.rollback()
        # Same idempotency key, so the provider returned the capture the other request recorded
        logger.warning(
            "Renewal %s of subscription %s was applied by a concurrent request (payment %s)",
            renewal_count + 1, subscription_id, payment.id
        )
        raise
    except IntegrityError:
        await db.rollback()
        logger.critical(
            "Captured renewal payment %s for %s conflicts with an active subscription; manual reconciliation required",
            payment.id, idempotency_key
        )
        raise AlreadySubscribed("Another subscription to this creator is still running")
    except Exception:
        await db.rollback()
        logger.critical(
            "Captured renewal payment %s for %s could not be recorded; manual reconciliation required",
            payment.id, idempotency_key, exc_info=True
        )
        raise

    await db.refresh(sub)
    logger.info("Subscription %s renewed until %s", sub.id, sub.expiration_date)
    return sub

async def list_subscriptions(db: AsyncSession, subscriber_id: UUID):
    result = await db.execute(
        select(models.Subscription)
        .where(models.Subscription.subscriber_id == subscriber_id)
        .order_by(models.Subscription.created_at.desc())
    )
    return result.scalars().all()

async def list_subscribers(db: AsyncSession, creator_id: UUID):
    result = await db.execute(
        select(models.Subscription)
        .where(models.Subscription.creator_id == creator_id)
        .order_by(models.Subscription.created_at.desc())
    )
    return result.scalars().all()

"""
Content access policy.

A user may open a content item when they created it, when it is free, when
they hold a completed purchase of it (purchase / both), or when they hold an
entitling subscription to its creator (subscription / both). A subscription
entitles while it is active or canceled and its expiration date has not
passed; expiry is evaluated here at read time, there is no background sweep.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.clock import utcnow
from marketplace.modules.cms.models import Content, PricingModel
from marketplace.modules.sales.models import Purchase, PurchaseStatus
from marketplace.modules.subscriptions.models import Subscription, SubscriptionStatus

ENTITLING_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELED)

async def find_completed_purchase(db: AsyncSession, buyer_id: UUID, content_id: UUID) -> Optional[Purchase]:
    result = await db.execute(
        select(Purchase)
        .where(
            Purchase.buyer_id == buyer_id,
            Purchase.content_id == content_id,
            Purchase.status == PurchaseStatus.COMPLETED
        )
    )
    return result.scalars().first()

async def find_entitling_subscription(
    db: AsyncSession,
    subscriber_id: UUID,
    creator_id: UUID,
    now: Optional[datetime] = None,
    exclude_id: Optional[UUID] = None
) -> Optional[Subscription]:
    now = now or utcnow()
    stmt = select(Subscription).where(
        Subscription.subscriber_id == subscriber_id,
        Subscription.creator_id == creator_id,
        Subscription.status.in_(ENTITLING_STATUSES),
        Subscription.expiration_date >= now
    )
    if exclude_id is not None:
        stmt = stmt.where(Subscription.id != exclude_id)
    result = await db.execute(stmt)
    return result.scalars().first()

async def has_access(
    db: AsyncSession,
    content: Content,
    user_id: Optional[UUID],
    now: Optional[datetime] = None
) -> bool:
    if content.pricing_model == PricingModel.FREE:
        return True

    if user_id is None:
        return False

    if content.creator_id == user_id:
        return True

    if content.pricing_model.allows_purchase:
        if await find_completed_purchase(db, user_id, content.id):
            return True

    if content.pricing_model.allows_subscription:
        if await find_entitling_subscription(db, user_id, content.creator_id, now=now):
            return True

    return False

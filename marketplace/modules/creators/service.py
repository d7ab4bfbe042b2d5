import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.clock import utcnow
from marketplace.core.config import settings
from marketplace.core.errors import AlreadyExists, InvalidArgument, NotFound
from marketplace.modules.auth.models import User, UserRole
from marketplace.modules.creators import models

logger = logging.getLogger(__name__)

async def find_creator_profile(db: AsyncSession, user_id: UUID) -> Optional[models.CreatorProfile]:
    result = await db.execute(
        select(models.CreatorProfile).where(models.CreatorProfile.user_id == user_id)
    )
    return result.scalars().first()

async def get_creator_profile(db: AsyncSession, user_id: UUID) -> models.CreatorProfile:
    profile = await find_creator_profile(db, user_id)
    if not profile:
        raise NotFound("Creator profile not found")
    return profile

async def create_creator_profile(db: AsyncSession, user_id: UUID) -> models.CreatorProfile:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    if await find_creator_profile(db, user_id):
        raise AlreadyExists("Creator profile already exists")

    profile = models.CreatorProfile(
        user_id=user_id,
        status=models.CreatorStatus.ACTIVE,
        subscription_enabled=False,
        total_revenue=Decimal("0.00"),
        total_subscribers=0
    )
    user.role = UserRole.CREATOR
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    logger.info("Creator profile %s created for user %s", profile.id, user_id)
    return profile

async def update_subscription_settings(
    db: AsyncSession,
    user_id: UUID,
    enabled: bool,
    price: Optional[Decimal] = None
) -> models.CreatorProfile:
    profile = await get_creator_profile(db, user_id)

    if enabled:
        effective_price = price if price is not None else profile.subscription_price
        if effective_price is None or Decimal(effective_price) < settings.MINIMUM_SUBSCRIPTION_PRICE:
            raise InvalidArgument(f"Subscription price must be at least ${settings.MINIMUM_SUBSCRIPTION_PRICE}")
        profile.subscription_price = Decimal(effective_price)
    elif price is not None:
        profile.subscription_price = Decimal(price)

    profile.subscription_enabled = enabled
    await db.commit()
    await db.refresh(profile)
    return profile

async def increment_creator_totals(
    db: AsyncSession,
    user_id: UUID,
    revenue: Decimal = Decimal("0"),
    subscribers: int = 0
) -> None:
    """Adds to the creator aggregates inside the caller's transaction."""
    await db.execute(
        update(models.CreatorProfile)
        .where(models.CreatorProfile.user_id == user_id)
        .values(
            total_revenue=models.CreatorProfile.total_revenue + revenue,
            total_subscribers=models.CreatorProfile.total_subscribers + subscribers
        )
        .execution_options(synchronize_session=False)
    )

async def lock_creator_profile(db: AsyncSession, user_id: UUID) -> None:
    """
    Write-locks the profile row until the caller commits or rolls back.

    Done with an UPDATE so SQLite, which has no SELECT ... FOR UPDATE, takes
    its database write lock at the same point PostgreSQL takes the row lock.
    """
    result = await db.execute(
        update(models.CreatorProfile)
        .where(models.CreatorProfile.user_id == user_id)
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("Creator profile not found")

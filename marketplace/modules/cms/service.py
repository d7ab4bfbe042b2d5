import logging
import math
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.clock import utcnow
from marketplace.core.config import settings
from marketplace.core.errors import MissingPrice, NotFound, Unauthorized
from marketplace.modules.cms import models, schemas
from marketplace.modules.creators import service as creators_service
from marketplace.modules.creators.models import CreatorStatus

logger = logging.getLogger(__name__)

def validate_pricing(pricing_model: models.PricingModel, price: Optional[Decimal]) -> None:
    if pricing_model.allows_purchase:
        if price is None or Decimal(price) < settings.MINIMUM_PURCHASE_PRICE:
            raise MissingPrice(f"Price must be at least ${settings.MINIMUM_PURCHASE_PRICE}")

async def create_content(db: AsyncSession, creator_id: UUID, data: schemas.ContentCreate) -> models.Content:
    profile = await creators_service.find_creator_profile(db, creator_id)
    if not profile or profile.status != CreatorStatus.ACTIVE:
        raise Unauthorized("Active creator status required")

    validate_pricing(data.pricing_model, data.price)

    content = models.Content(
        creator_id=creator_id,
        title=data.title,
        description=data.description,
        category=data.category,
        tags=data.tags,
        pricing_model=data.pricing_model,
        price=data.price,
        visibility=data.visibility,
        status=models.ContentStatus.PUBLISHED if data.publish else models.ContentStatus.DRAFT,
        published_at=utcnow() if data.publish else None,
        purchase_count=0
    )
    db.add(content)
    await db.commit()
    await db.refresh(content)
    logger.info("Content %s created by %s (%s)", content.id, creator_id, content.pricing_model.value)
    return content

async def get_content(db: AsyncSession, content_id: UUID) -> models.Content:
    content = await db.get(models.Content, content_id)
    if not content or content.status == models.ContentStatus.DELETED:
        raise NotFound("Content not found")
    return content

async def list_content(
    db: AsyncSession,
    creator_id: Optional[UUID] = None,
    page: int = 1,
    size: int = 24
) -> dict:
    page = max(page, 1)
    size = min(max(size, 1), 100)

    filters = [
        models.Content.status == models.ContentStatus.PUBLISHED,
        models.Content.visibility == models.ContentVisibility.PUBLIC,
    ]
    if creator_id:
        filters.append(models.Content.creator_id == creator_id)

    total = (await db.execute(select(func.count(models.Content.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(models.Content)
        .where(*filters)
        .order_by(models.Content.created_at.desc())
        .offset((page - 1) * size)
        .limit(size)
    )

    return {
        "items": result.scalars().all(),
        "total": total,
        "page": page,
        "size": size,
        "pages": math.ceil(total / size) if total else 0
    }

from typing import Any
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core import deps
from marketplace.core.db import get_db
from marketplace.modules.auth import models as auth_models
from marketplace.modules.creators import schemas, service
from marketplace.modules.payouts import service as payouts_service
from marketplace.modules.sales.commission import resolve_commission_rate

router = APIRouter()

@router.post("/me", response_model=schemas.CreatorProfileRead, status_code=status.HTTP_201_CREATED)
async def become_creator(
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.create_creator_profile(db, current_user.id)

@router.get("/me", response_model=schemas.CreatorProfileRead)
async def get_my_profile(
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.get_creator_profile(db, current_user.id)

@router.put("/me/subscription", response_model=schemas.CreatorProfileRead)
async def update_subscription_settings(
    settings_in: schemas.SubscriptionSettingsUpdate,
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.update_subscription_settings(
        db, current_user.id, settings_in.subscription_enabled, settings_in.subscription_price
    )

@router.get("/me/earnings", response_model=schemas.EarningsSummary)
async def get_my_earnings(
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    profile = await service.get_creator_profile(db, current_user.id)
    paid_out = await payouts_service.paid_out_total(db, current_user.id)
    return {
        "total_revenue": profile.total_revenue,
        "paid_out": paid_out,
        "available_balance": profile.total_revenue - paid_out,
        "total_subscribers": profile.total_subscribers,
        "commission_rate": resolve_commission_rate(profile.commission_rate),
    }

@router.get("/{user_id}", response_model=schemas.CreatorProfileRead)
async def get_creator(
    user_id: UUID,
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.get_creator_profile(db, user_id)

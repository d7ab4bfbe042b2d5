from typing import Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core import deps
from marketplace.core.db import get_db
from marketplace.modules.auth import models as auth_models
from marketplace.modules.payments.gateway import PaymentGateway, get_payment_gateway
from marketplace.modules.subscriptions import models, schemas, service

router = APIRouter()

def _to_read(sub: models.Subscription) -> schemas.SubscriptionRead:
    return schemas.SubscriptionRead.model_validate(sub).model_copy(
        update={
            "effective_status": service.effective_status(sub),
            "has_access": service.is_entitled(sub),
        }
    )

@router.get("/me", response_model=List[schemas.SubscriptionRead])
async def list_my_subscriptions(
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return [_to_read(sub) for sub in await service.list_subscriptions(db, current_user.id)]

@router.get("/subscribers", response_model=List[schemas.SubscriptionRead])
async def list_my_subscribers(
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """For creators to see all subscribers"""
    if current_user.role != auth_models.UserRole.CREATOR:
        raise HTTPException(status_code=403, detail="Only creators")
    return [_to_read(sub) for sub in await service.list_subscribers(db, current_user.id)]

@router.post("/creators/{creator_id}", response_model=schemas.SubscriptionRead, status_code=status.HTTP_201_CREATED)
async def subscribe_to_creator(
    creator_id: UUID,
    payload: schemas.SubscriptionCreate,
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db)
) -> Any:
    sub = await service.create_subscription(
        db,
        gateway,
        subscriber_id=current_user.id,
        creator_id=creator_id,
        payment_method_ref=payload.payment_method_ref,
        payment_method=payload.payment_method,
    )
    return _to_read(sub)

@router.get("/{sub_id}", response_model=schemas.SubscriptionRead)
async def get_subscription(
    sub_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    sub = await service.get_subscription(db, sub_id)
    if current_user.id not in (sub.subscriber_id, sub.creator_id):
        raise HTTPException(status_code=403, detail="Not your subscription")
    return _to_read(sub)

@router.post("/{sub_id}/cancel", response_model=schemas.SubscriptionRead)
async def cancel_subscription(
    sub_id: UUID,
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return _to_read(await service.cancel_subscription(db, sub_id, current_user.id))

@router.post("/{sub_id}/renew", response_model=schemas.SubscriptionRead)
async def renew_subscription(
    sub_id: UUID,
    payload: schemas.SubscriptionRenew,
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db)
) -> Any:
    sub = await service.renew_subscription(
        db,
        gateway,
        subscription_id=sub_id,
        user_id=current_user.id,
        payment_method_ref=payload.payment_method_ref,
        payment_method=payload.payment_method,
    )
    return _to_read(sub)

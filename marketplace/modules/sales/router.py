from typing import Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core import deps
from marketplace.core.db import get_db
from marketplace.modules.auth import models as auth_models
from marketplace.modules.payments.gateway import PaymentGateway, get_payment_gateway
from marketplace.modules.sales import schemas, service

router = APIRouter()

@router.post("/content/{content_id}/purchase", response_model=schemas.PurchaseRead, status_code=status.HTTP_201_CREATED)
async def purchase_content(
    content_id: UUID,
    payload: schemas.PurchaseRequest,
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.purchase_content(
        db,
        gateway,
        buyer_id=current_user.id,
        content_id=content_id,
        payment_method_ref=payload.payment_method_ref,
        payment_method=payload.payment_method,
    )

@router.get("/purchases/me", response_model=List[schemas.PurchaseRead])
async def list_my_purchases(
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_purchases(db, current_user.id)

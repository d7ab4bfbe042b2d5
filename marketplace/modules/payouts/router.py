from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core import deps
from marketplace.core.db import get_db
from marketplace.modules.auth import models as auth_models
from marketplace.modules.payouts import schemas, service

router = APIRouter()

async def require_creator(
    current_user: auth_models.User = Depends(deps.get_current_active_user)
) -> auth_models.User:
    if current_user.role != auth_models.UserRole.CREATOR:
        raise HTTPException(status_code=403, detail="Only creators can request payouts")
    return current_user

@router.post("/", response_model=schemas.PayoutRead, status_code=status.HTTP_201_CREATED)
async def request_payout(
    payout_in: schemas.PayoutCreate,
    current_user: auth_models.User = Depends(require_creator),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.request_payout(
        db,
        creator_id=current_user.id,
        amount=payout_in.amount,
        method=payout_in.method,
        destination=payout_in.destination,
        instant=payout_in.instant,
    )

@router.get("/", response_model=List[schemas.PayoutRead])
async def list_my_payouts(
    current_user: auth_models.User = Depends(require_creator),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_payouts(db, current_user.id)

@router.get("/balance", response_model=schemas.BalanceRead)
async def get_balance(
    current_user: auth_models.User = Depends(require_creator),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return {"available_balance": await service.available_balance(db, current_user.id)}

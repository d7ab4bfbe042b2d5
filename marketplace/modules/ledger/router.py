from typing import Any, List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core import deps
from marketplace.core.db import get_db
from marketplace.modules.auth import models as auth_models
from marketplace.modules.ledger import schemas, service

router = APIRouter()

@router.get("/me", response_model=List[schemas.TransactionRead])
async def list_my_transactions(
    limit: int = 50,
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_transactions(db, current_user.id, min(max(limit, 1), 200))

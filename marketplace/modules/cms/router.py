from typing import Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core import deps
from marketplace.core.db import get_db
from marketplace.modules.access.service import has_access
from marketplace.modules.auth import models as auth_models
from marketplace.modules.cms import schemas, service

router = APIRouter()

@router.post("/", response_model=schemas.ContentRead, status_code=status.HTTP_201_CREATED)
async def create_content(
    content_in: schemas.ContentCreate,
    current_user: auth_models.User = Depends(deps.get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.create_content(db, current_user.id, content_in)

@router.get("/", response_model=schemas.ContentListResponse)
async def list_content(
    creator_id: Optional[UUID] = None,
    page: int = 1,
    size: int = 24,
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_content(db, creator_id=creator_id, page=page, size=size)

@router.get("/{content_id}", response_model=schemas.ContentDetail)
async def get_content(
    content_id: UUID,
    current_user: Optional[auth_models.User] = Depends(deps.get_current_user_optional),
    db: AsyncSession = Depends(get_db)
) -> Any:
    content = await service.get_content(db, content_id)
    access = await has_access(db, content, current_user.id if current_user else None)
    return schemas.ContentDetail.model_validate(content).model_copy(update={"has_access": access})

@router.get("/{content_id}/access", response_model=schemas.AccessResponse)
async def check_access(
    content_id: UUID,
    current_user: Optional[auth_models.User] = Depends(deps.get_current_user_optional),
    db: AsyncSession = Depends(get_db)
) -> Any:
    content = await service.get_content(db, content_id)
    return {"access": await has_access(db, content, current_user.id if current_user else None)}

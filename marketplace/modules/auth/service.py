from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core import security
from marketplace.core.errors import AlreadyExists
from marketplace.modules.auth import models, schemas

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.email == email))
    return result.scalars().first()

async def register_user(db: AsyncSession, user_in: schemas.UserCreate) -> models.User:
    if await get_user_by_email(db, user_in.email):
        raise AlreadyExists("The user with this email already exists in the system")

    user = models.User(
        email=user_in.email,
        hashed_password=security.get_password_hash(user_in.password),
        display_name=user_in.display_name,
        role=models.UserRole.CONSUMER
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user

async def authenticate(db: AsyncSession, email: str, password: str) -> Optional[models.User]:
    user = await get_user_by_email(db, email)
    if not user or not security.verify_password(password, user.hashed_password):
        return None
    return user

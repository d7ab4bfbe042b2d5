from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field
from marketplace.modules.auth.models import UserRole

class UserBase(BaseModel):
    email: EmailStr
    display_name: Optional[str] = None

class UserCreate(UserBase):
    password: str = Field(min_length=8)

class UserRead(UserBase):
    id: UUID
    role: UserRole
    is_active: bool

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str

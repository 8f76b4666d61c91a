from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime

from app.enums.user_role import UserRole


class UserBase(BaseModel):
    name: str
    email: EmailStr
    phone: Optional[str] = None


class UserCreate(UserBase):
    password: str


class UserInDB(UserBase):
    id: int
    role: UserRole
    is_active: bool = True
    created_at: datetime

    class Config:
        from_attributes = True


class UserResponse(UserInDB):
    pass


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

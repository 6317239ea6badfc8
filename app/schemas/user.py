from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field
from ..models.user import UserRole, UserStatus


class UserBase(BaseModel):
    email: EmailStr
    name: str


class UserInvite(UserBase):
    role: UserRole = UserRole.USER


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: str
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserAdminResponse(UserResponse):
    pay_rate: Optional[Decimal] = None


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserStatusUpdate(BaseModel):
    status: UserStatus


class PayRateUpdate(BaseModel):
    pay_rate: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)

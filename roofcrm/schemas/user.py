from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from decimal import Decimal

from roofcrm.core.commission_types import UserRole


class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = Field(default=None, max_length=255)
    role: UserRole = UserRole.SALES
    is_active: bool = True
    can_approve_commissions: bool = False
    commission_plan_id: Optional[int] = None

    class Config:
        use_enum_values = True
        validate_default = True


class UserCreate(UserBase):
    """Admin settings payload. The per-role blocks are all optional."""
    sales_commission_type: Optional[str] = None
    sales_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    sales_flat_amount: Optional[Decimal] = Field(default=None, ge=0)
    sales_paid_when: Optional[str] = None
    marketing_commission_type: Optional[str] = None
    marketing_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    marketing_flat_amount: Optional[Decimal] = Field(default=None, ge=0)
    marketing_paid_when: Optional[str] = None
    production_commission_type: Optional[str] = None
    production_commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    production_flat_amount: Optional[Decimal] = Field(default=None, ge=0)
    production_paid_when: Optional[str] = None


class User(UserBase):
    id: int
    company_id: int

    class Config:
        from_attributes = True

from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal


class CommissionPlanCreate(BaseModel):
    name: str = Field(..., max_length=255)
    commission_type: str = Field(default="percentage", max_length=50) # percentage | flat_per_job
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    flat_amount: Optional[Decimal] = Field(default=None, ge=0)
    paid_when: Optional[str] = Field(default=None, max_length=50)
    is_active: bool = True


class TeamCreate(BaseModel):
    location_id: int
    name: str = Field(..., max_length=255)
    team_lead_id: Optional[int] = None
    commission_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    paid_when: Optional[str] = None
    include_own_sales: bool = False
    is_active: bool = True


class LocationUserCreate(BaseModel):
    location_id: int
    user_id: int
    team_id: Optional[int] = None
    commission_enabled: bool = False
    commission_type: Optional[str] = None
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    flat_commission_amount: Optional[Decimal] = Field(default=None, ge=0)
    paid_when: Optional[str] = None
    include_own_sales: bool = False

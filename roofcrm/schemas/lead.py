from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from roofcrm.schemas.commission import CommissionResult


class LeadBase(BaseModel):
    full_name: str = Field(..., max_length=255)
    location_id: Optional[int] = None
    status: str = Field(default="new", max_length=50)


class LeadCreate(LeadBase):
    sales_rep_id: Optional[int] = None
    marketing_rep_id: Optional[int] = None
    sales_manager_id: Optional[int] = None
    production_manager_id: Optional[int] = None


class LeadAssignment(BaseModel):
    """Body of an assignment change. user_id=None unassigns the slot."""
    user_id: Optional[int] = None
    skip_cancel_others: bool = False


class Lead(LeadBase):
    id: int
    company_id: int
    sales_rep_id: Optional[int] = None
    marketing_rep_id: Optional[int] = None
    sales_manager_id: Optional[int] = None
    production_manager_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeadAssignmentResult(BaseModel):
    lead: Lead
    commission: CommissionResult

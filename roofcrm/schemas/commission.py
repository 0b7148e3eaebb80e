from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from roofcrm.core.commission_types import (
    AssignmentField,
    CommissionStatus,
    CommissionType,
    PaidWhen,
)


class CommissionNestedUser(BaseModel):
    """A trimmed User schema for nesting within a commission."""
    id: int
    full_name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class LeadCommissionBase(BaseModel):
    user_id: int
    commission_plan_id: Optional[int] = None
    assignment_field: AssignmentField = AssignmentField.SALES_REP
    commission_type: CommissionType
    commission_rate: Optional[Decimal] = None
    flat_amount: Optional[Decimal] = None
    base_amount: Decimal = Decimal("0")
    calculated_amount: Decimal = Decimal("0")
    paid_when: PaidWhen = PaidWhen.WHEN_FINAL_PAYMENT
    notes: Optional[str] = None

    class Config:
        use_enum_values = True # store plain strings in the String columns
        validate_default = True


class LeadCommissionCreate(LeadCommissionBase):
    """Insert payload. lead_id and company_id come from the caller's scope, not the body."""
    status: CommissionStatus = CommissionStatus.PENDING
    created_by: Optional[int] = None


class LeadCommissionUpdate(BaseModel):
    commission_plan_id: Optional[int] = None
    commission_type: Optional[CommissionType] = None
    commission_rate: Optional[Decimal] = None
    flat_amount: Optional[Decimal] = None
    base_amount: Optional[Decimal] = Field(default=None, ge=0)
    calculated_amount: Optional[Decimal] = None
    balance_owed: Optional[Decimal] = None
    paid_when: Optional[PaidWhen] = None
    status: Optional[CommissionStatus] = None
    notes: Optional[str] = None

    class Config:
        use_enum_values = True


class LeadCommissionEdit(BaseModel):
    """Fields a person may change by hand. calculated_amount is always derived."""
    commission_type: Optional[CommissionType] = None
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    flat_amount: Optional[Decimal] = Field(default=None, ge=0)
    base_amount: Optional[Decimal] = Field(default=None, ge=0)
    paid_when: Optional[PaidWhen] = None
    notes: Optional[str] = None

    class Config:
        use_enum_values = True


class LeadCommission(LeadCommissionBase):
    id: int
    company_id: int
    lead_id: int
    status: CommissionStatus
    paid_amount: Decimal
    balance_owed: Decimal
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    paid_by: Optional[int] = None
    paid_at: Optional[datetime] = None
    payment_notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    user: Optional[CommissionNestedUser] = None

    class Config:
        from_attributes = True


class CommissionSummary(BaseModel):
    total_owed: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    total_pending: Decimal = Decimal("0")
    total_approved: Decimal = Decimal("0")
    total_cancelled: Decimal = Decimal("0")
    count_paid: int = 0
    count_pending: int = 0
    count_approved: int = 0
    count_cancelled: int = 0


class CommissionPayment(BaseModel):
    payment_amount: Optional[Decimal] = Field(default=None, gt=0) # None pays the remaining balance
    payment_notes: Optional[str] = None


class CommissionCancel(BaseModel):
    notes: Optional[str] = None


class CommissionResult(BaseModel):
    """Outcome of one reconciliation. Failures are reported here, never raised."""
    success: bool
    message: Optional[str] = None
    commission_id: Optional[int] = None
    amount: Optional[Decimal] = None
    cancelled_count: int = 0


class FanOutResult(BaseModel):
    office_created: List[int] = Field(default_factory=list) # user ids that received an office override
    team_lead_created: Optional[int] = None
    skipped: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class RecalculateResult(BaseModel):
    success: bool
    updated: int = 0
    errors: List[str] = Field(default_factory=list)


class RefreshResult(BaseModel):
    success: bool
    assignments: List[CommissionResult] = Field(default_factory=list)
    fan_out: Optional[FanOutResult] = None
    recalculation: Optional[RecalculateResult] = None
    message: Optional[str] = None

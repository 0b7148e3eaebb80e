"""
Commission rule resolution.

Which terms apply to a user on a lead, first match wins:

1. the user's commission plan (non-deleted, same company)
2. the user's enabled override at the lead's location
3. the user's role-based rates for the role behind the assignment slot
4. nothing -- callers treat this as "no commission", not as an error

``resolve_commission_config`` is pure; ``load_commission_context`` does the reads.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from roofcrm.core.commission_math import to_decimal
from roofcrm.core.commission_types import (
    AssignmentField,
    CommissionRole,
    CommissionType,
    ConfigSource,
    DEFAULT_PAID_WHEN,
    PaidWhen,
    coerce_paid_when,
    map_plan_paid_when,
)
from roofcrm.crud import crud_commission_plan, crud_location
from roofcrm.models.commission_plan import CommissionPlan
from roofcrm.models.location_user import LocationUser
from roofcrm.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleRates:
    commission_type: Optional[str] = None
    commission_rate: Optional[Decimal] = None
    flat_amount: Optional[Decimal] = None
    paid_when: Optional[str] = None


@dataclass
class UserCommissionContext:
    """Everything the resolver needs about one user, fetched up front."""
    user_id: int
    plan: Optional[CommissionPlan] = None
    location_override: Optional[LocationUser] = None
    role_rates: Dict[CommissionRole, RoleRates] = field(default_factory=dict)


@dataclass(frozen=True)
class CommissionConfig:
    commission_type: Optional[CommissionType]
    source: ConfigSource
    commission_rate: Optional[Decimal] = None
    flat_amount: Optional[Decimal] = None
    paid_when: PaidWhen = DEFAULT_PAID_WHEN
    commission_plan_id: Optional[int] = None
    label: str = ""

    @property
    def is_configured(self) -> bool:
        return self.source is not ConfigSource.NONE


NO_COMMISSION = CommissionConfig(commission_type=None, source=ConfigSource.NONE, label="no commission configured")


def role_rates_for(user: User, role: CommissionRole) -> RoleRates:
    if role is CommissionRole.SALES:
        return RoleRates(user.sales_commission_type, user.sales_commission_rate, user.sales_flat_amount, user.sales_paid_when)
    if role is CommissionRole.MARKETING:
        return RoleRates(
            user.marketing_commission_type,
            user.marketing_commission_rate,
            user.marketing_flat_amount,
            user.marketing_paid_when,
        )
    return RoleRates(
        user.production_commission_type,
        user.production_commission_rate,
        user.production_flat_amount,
        user.production_paid_when,
    )


def normalize_commission_type(raw_type: Optional[str]) -> CommissionType:
    # flat_per_job is the plan spelling of a flat commission; unknown types fall back to percentage
    if raw_type in ("flat_per_job", CommissionType.FLAT_AMOUNT.value):
        return CommissionType.FLAT_AMOUNT
    return CommissionType.PERCENTAGE


def _terms(commission_type: CommissionType, rate: Any, flat_amount: Any) -> Dict[str, Optional[Decimal]]:
    if commission_type is CommissionType.FLAT_AMOUNT:
        return {"commission_rate": None, "flat_amount": to_decimal(flat_amount)}
    return {"commission_rate": to_decimal(rate), "flat_amount": None}


def _from_plan(plan: CommissionPlan) -> CommissionConfig:
    commission_type = normalize_commission_type(plan.commission_type)
    return CommissionConfig(
        commission_type=commission_type,
        source=ConfigSource.PLAN,
        paid_when=map_plan_paid_when(plan.paid_when),
        commission_plan_id=plan.id,
        label=plan.name,
        **_terms(commission_type, plan.commission_rate, plan.flat_amount),
    )


def _from_location(location_user: LocationUser) -> CommissionConfig:
    commission_type = normalize_commission_type(location_user.commission_type)
    return CommissionConfig(
        commission_type=commission_type,
        source=ConfigSource.LOCATION,
        paid_when=coerce_paid_when(location_user.paid_when),
        label="location override",
        **_terms(commission_type, location_user.commission_rate, location_user.flat_commission_amount),
    )


def _from_role(role: CommissionRole, rates: RoleRates) -> Optional[CommissionConfig]:
    if rates.commission_type == CommissionType.PERCENTAGE.value:
        if rates.commission_rate is None:
            return None
    elif rates.commission_type == CommissionType.FLAT_AMOUNT.value:
        if rates.flat_amount is None:
            return None
    else:
        return None

    commission_type = CommissionType(rates.commission_type)
    return CommissionConfig(
        commission_type=commission_type,
        source=ConfigSource.ROLE,
        paid_when=coerce_paid_when(rates.paid_when),
        label=f"{role.value} role rate",
        **_terms(commission_type, rates.commission_rate, rates.flat_amount),
    )


def resolve_commission_config(context: UserCommissionContext, assignment_field: AssignmentField) -> CommissionConfig:
    if context.plan is not None:
        return _from_plan(context.plan)

    override = context.location_override
    if override is not None and override.commission_enabled:
        return _from_location(override)

    role = AssignmentField(assignment_field).role
    if role is not None:
        config = _from_role(role, context.role_rates.get(role, RoleRates()))
        if config is not None:
            return config

    return NO_COMMISSION


def load_commission_context(
    db: Session, *, user: User, company_id: int, location_id: Optional[int]
) -> UserCommissionContext:
    plan = None
    if user.commission_plan_id:
        plan = crud_commission_plan.get_commission_plan(db, plan_id=user.commission_plan_id, company_id=company_id)
        if plan is None:
            logger.warning(
                f"User ID: {user.id} references commission plan ID: {user.commission_plan_id} "
                f"which is missing or deleted for company ID: {company_id}. Falling through to other rules."
            )

    location_override = None
    if location_id is not None:
        location_override = crud_location.get_location_user(db, location_id=location_id, user_id=user.id)

    return UserCommissionContext(
        user_id=user.id,
        plan=plan,
        location_override=location_override,
        role_rates={role: role_rates_for(user, role) for role in CommissionRole},
    )

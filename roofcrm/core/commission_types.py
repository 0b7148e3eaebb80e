"""
Closed vocabularies for the commission engine.

Values are the strings stored in the database, so every enum subclasses ``str``
and compares equal to its stored value.
"""
import enum
from typing import Optional


class CommissionType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FLAT_AMOUNT = "flat_amount"
    CUSTOM = "custom"


class CommissionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"


# Statuses a reconciliation is still allowed to touch
ACTIVE_STATUSES = (CommissionStatus.PENDING.value, CommissionStatus.APPROVED.value)
TERMINAL_STATUSES = (CommissionStatus.PAID.value, CommissionStatus.CANCELLED.value)


class PaidWhen(str, enum.Enum):
    WHEN_DEPOSIT_PAID = "when_deposit_paid"
    WHEN_JOB_COMPLETED = "when_job_completed"
    WHEN_FINAL_PAYMENT = "when_final_payment"
    CUSTOM = "custom"


DEFAULT_PAID_WHEN = PaidWhen.WHEN_FINAL_PAYMENT


class ConfigSource(str, enum.Enum):
    PLAN = "plan"
    LOCATION = "location"
    ROLE = "role"
    NONE = "none"


class CommissionRole(str, enum.Enum):
    """The three role rate blocks stored on a user."""
    SALES = "sales"
    MARKETING = "marketing"
    PRODUCTION = "production"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    OFFICE = "office"
    SALES_MANAGER = "sales_manager"
    SALES = "sales"
    PRODUCTION = "production"
    MARKETING = "marketing"


class AssignmentField(str, enum.Enum):
    """Which slot a commission row represents on a lead."""
    SALES_REP = "sales_rep_id"
    MARKETING_REP = "marketing_rep_id"
    SALES_MANAGER = "sales_manager_id"
    PRODUCTION_MANAGER = "production_manager_id"
    OFFICE_OVERRIDE = "office_override"
    TEAM_LEAD_OVERRIDE = "team_lead_override"

    @property
    def is_override(self) -> bool:
        return self in OVERRIDE_FIELDS

    @property
    def role(self) -> Optional[CommissionRole]:
        return _ROLE_BY_FIELD.get(self)


LEAD_ASSIGNMENT_FIELDS = (
    AssignmentField.SALES_REP,
    AssignmentField.MARKETING_REP,
    AssignmentField.SALES_MANAGER,
    AssignmentField.PRODUCTION_MANAGER,
)
OVERRIDE_FIELDS = (AssignmentField.OFFICE_OVERRIDE, AssignmentField.TEAM_LEAD_OVERRIDE)

_ROLE_BY_FIELD = {
    AssignmentField.SALES_REP: CommissionRole.SALES,
    AssignmentField.SALES_MANAGER: CommissionRole.SALES,
    AssignmentField.MARKETING_REP: CommissionRole.MARKETING,
    AssignmentField.PRODUCTION_MANAGER: CommissionRole.PRODUCTION,
}

_PLAN_PAID_WHEN = {
    "deposit": PaidWhen.WHEN_DEPOSIT_PAID,
    "completed": PaidWhen.WHEN_JOB_COMPLETED,
    "collected": PaidWhen.WHEN_FINAL_PAYMENT,
    # lead commissions have no "on signature" trigger
    "signed": PaidWhen.CUSTOM,
}


def map_plan_paid_when(plan_paid_when: Optional[str]) -> PaidWhen:
    """Translate a commission plan's trigger tag into a lead commission paid_when."""
    if plan_paid_when in _PLAN_PAID_WHEN:
        return _PLAN_PAID_WHEN[plan_paid_when]
    return coerce_paid_when(plan_paid_when)


def coerce_paid_when(value: Optional[str]) -> PaidWhen:
    """Accept a stored paid_when value, falling back to the final payment trigger."""
    try:
        return PaidWhen(value)
    except ValueError:
        return DEFAULT_PAID_WHEN

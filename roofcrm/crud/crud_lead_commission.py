from datetime import datetime
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from typing import Optional, List, Sequence, Union

from roofcrm.core.commission_math import to_decimal
from roofcrm.core.commission_types import ACTIVE_STATUSES, OVERRIDE_FIELDS, AssignmentField, CommissionStatus
from roofcrm.models.lead_commission import LeadCommission
from roofcrm.schemas.commission import CommissionSummary, LeadCommissionCreate, LeadCommissionUpdate


def _live(query):
    return query.filter(LeadCommission.deleted_at.is_(None))


def create_lead_commission(
    db: Session, *, lead_id: int, company_id: int, obj_in: LeadCommissionCreate
) -> LeadCommission:
    """
    Insert a commission row for a lead. balance_owed starts at the calculated amount.
    """
    data = obj_in.model_dump()
    db_obj = LeadCommission(
        **data,
        lead_id=lead_id,
        company_id=company_id,
        paid_amount=Decimal("0"),
        balance_owed=data["calculated_amount"],
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update_lead_commission(db: Session, *, db_obj: LeadCommission, obj_in: LeadCommissionUpdate) -> LeadCommission:
    """
    Apply the fields set on obj_in. When calculated_amount changes and balance_owed
    is not given, the balance follows it.
    """
    update_data = obj_in.model_dump(exclude_unset=True)
    if "calculated_amount" in update_data and "balance_owed" not in update_data:
        update_data["balance_owed"] = to_decimal(update_data["calculated_amount"]) - to_decimal(db_obj.paid_amount)
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_lead_commission(db: Session, *, commission_id: int, company_id: int) -> Optional[LeadCommission]:
    """
    Get a single non-deleted commission, scoped to the company.
    """
    return (
        _live(db.query(LeadCommission))
        .options(joinedload(LeadCommission.user))
        .filter(LeadCommission.id == commission_id, LeadCommission.company_id == company_id)
        .first()
    )


def get_lead_commissions(db: Session, *, lead_id: int, company_id: int) -> List[LeadCommission]:
    """
    All non-deleted commissions on a lead, newest first.
    """
    return (
        _live(db.query(LeadCommission))
        .options(joinedload(LeadCommission.user))
        .filter(LeadCommission.lead_id == lead_id, LeadCommission.company_id == company_id)
        .order_by(LeadCommission.created_at.desc(), LeadCommission.id.desc())
        .all()
    )


def get_user_commissions(
    db: Session,
    *,
    user_id: int,
    company_id: int,
    status: Optional[Union[str, Sequence[str]]] = None,
    lead_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[LeadCommission]:
    """
    Commissions earned by a user across all leads, optionally filtered by status (one or many) and lead.
    """
    query = _live(db.query(LeadCommission)).filter(
        LeadCommission.user_id == user_id, LeadCommission.company_id == company_id
    )
    if status:
        if isinstance(status, str):
            query = query.filter(LeadCommission.status == status)
        else:
            query = query.filter(LeadCommission.status.in_(list(status)))
    if lead_id is not None:
        query = query.filter(LeadCommission.lead_id == lead_id)

    return query.order_by(LeadCommission.created_at.desc(), LeadCommission.id.desc()).offset(skip).limit(limit).all()


def get_active_commissions_for_lead(db: Session, *, lead_id: int, company_id: int) -> List[LeadCommission]:
    """
    Pending and approved commissions on a lead, oldest first.
    """
    return (
        _live(db.query(LeadCommission))
        .filter(
            LeadCommission.lead_id == lead_id,
            LeadCommission.company_id == company_id,
            LeadCommission.status.in_(ACTIVE_STATUSES),
        )
        .order_by(LeadCommission.id.asc())
        .all()
    )


def get_active_commission(
    db: Session, *, lead_id: int, user_id: int, assignment_field: AssignmentField, company_id: int
) -> Optional[LeadCommission]:
    """
    The live row for one (lead, user, slot) tuple, if any.
    """
    return (
        _live(db.query(LeadCommission))
        .filter(
            LeadCommission.lead_id == lead_id,
            LeadCommission.user_id == user_id,
            LeadCommission.assignment_field == AssignmentField(assignment_field).value,
            LeadCommission.company_id == company_id,
            LeadCommission.status.in_(ACTIVE_STATUSES),
        )
        .first()
    )


def user_has_commission_on_lead(db: Session, *, lead_id: int, user_id: int, company_id: int) -> bool:
    """
    True when the user has any non-deleted commission on the lead, whatever its slot or status.
    Guards the once-per-lead override commissions.
    """
    return (
        _live(db.query(LeadCommission.id))
        .filter(
            LeadCommission.lead_id == lead_id,
            LeadCommission.user_id == user_id,
            LeadCommission.company_id == company_id,
        )
        .first()
        is not None
    )


def sum_attributed_base_amount(db: Session, *, lead_id: int, user_id: int, company_id: int) -> Decimal:
    """
    Invoice amount already attributed to the user on this lead, across all role slots.
    Cancelled rows no longer attribute anything. Override rows carry their own
    full-invoice base and are left out.
    """
    total = (
        _live(db.query(func.coalesce(func.sum(LeadCommission.base_amount), 0)))
        .filter(
            LeadCommission.lead_id == lead_id,
            LeadCommission.user_id == user_id,
            LeadCommission.company_id == company_id,
            LeadCommission.status != CommissionStatus.CANCELLED.value,
            LeadCommission.assignment_field.notin_([f.value for f in OVERRIDE_FIELDS]),
        )
        .scalar()
    )
    return to_decimal(total)


def get_lead_commission_summary(db: Session, *, lead_id: int, company_id: int) -> CommissionSummary:
    """
    Totals per status for a lead. total_owed covers everything that is not cancelled.
    """
    summary = CommissionSummary()
    for commission in get_lead_commissions(db, lead_id=lead_id, company_id=company_id):
        amount = to_decimal(commission.calculated_amount)
        if commission.status == CommissionStatus.CANCELLED.value:
            summary.total_cancelled += amount
            summary.count_cancelled += 1
            continue
        summary.total_owed += amount
        if commission.status == CommissionStatus.PAID.value:
            summary.total_paid += amount
            summary.count_paid += 1
        elif commission.status == CommissionStatus.APPROVED.value:
            summary.total_approved += amount
            summary.count_approved += 1
        elif commission.status == CommissionStatus.PENDING.value:
            summary.total_pending += amount
            summary.count_pending += 1
    return summary


def delete_lead_commission(db: Session, *, db_obj: LeadCommission) -> LeadCommission:
    """
    Soft delete.
    """
    db_obj.deleted_at = datetime.utcnow()
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

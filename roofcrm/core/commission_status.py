"""
Commission status lifecycle.

    pending  -> approved | paid | cancelled
    approved -> paid | cancelled
    paid, cancelled: terminal

Only this module moves a commission between statuses once it exists, apart from
the reconciler cancelling rows on reassignment.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from roofcrm.core.commission_math import calculate_commission, to_decimal, to_money
from roofcrm.core.commission_types import TERMINAL_STATUSES, CommissionStatus, CommissionType
from roofcrm.crud import crud_lead_commission
from roofcrm.models.lead_commission import LeadCommission
from roofcrm.schemas.commission import LeadCommissionEdit

logger = logging.getLogger(__name__)

VALID_COMMISSION_TRANSITIONS = {
    CommissionStatus.PENDING.value: [
        CommissionStatus.APPROVED.value,
        CommissionStatus.PAID.value,
        CommissionStatus.CANCELLED.value,
    ],
    CommissionStatus.APPROVED.value: [CommissionStatus.PAID.value, CommissionStatus.CANCELLED.value],
    CommissionStatus.PAID.value: [],  # terminal
    CommissionStatus.CANCELLED.value: [],  # terminal
}


class CommissionError(Exception):
    """Base error for commission lifecycle operations."""
    pass


class CommissionNotFound(CommissionError):
    pass


class InvalidCommissionTransition(CommissionError):
    pass


class InvalidPayment(CommissionError):
    pass


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in VALID_COMMISSION_TRANSITIONS.get(from_status, [])


def _get_or_raise(db: Session, commission_id: int, company_id: int) -> LeadCommission:
    commission = crud_lead_commission.get_lead_commission(db, commission_id=commission_id, company_id=company_id)
    if commission is None:
        raise CommissionNotFound(f"Commission {commission_id} not found")
    return commission


def _check_transition(commission: LeadCommission, to_status: CommissionStatus) -> None:
    if not can_transition(commission.status, to_status.value):
        raise InvalidCommissionTransition(
            f"Cannot move commission {commission.id} from {commission.status} to {to_status.value}"
        )


def _save(db: Session, commission: LeadCommission) -> LeadCommission:
    db.add(commission)
    db.commit()
    db.refresh(commission)
    return commission


def approve_commission(db: Session, *, commission_id: int, company_id: int, approved_by: int) -> LeadCommission:
    commission = _get_or_raise(db, commission_id, company_id)
    _check_transition(commission, CommissionStatus.APPROVED)

    commission.status = CommissionStatus.APPROVED.value
    commission.approved_by = approved_by
    commission.approved_at = datetime.utcnow()
    commission = _save(db, commission)
    logger.info(f"Commission ID: {commission.id} approved by user ID: {approved_by}")
    return commission


def mark_commission_paid(
    db: Session,
    *,
    commission_id: int,
    company_id: int,
    paid_by: int,
    payment_amount: Optional[Decimal] = None,
    payment_notes: Optional[str] = None,
) -> LeadCommission:
    """
    Record a payment against a commission.

    Without payment_amount the remaining balance is paid. The row becomes paid once
    paid_amount reaches calculated_amount; a partial payment keeps its current status.
    """
    commission = _get_or_raise(db, commission_id, company_id)
    _check_transition(commission, CommissionStatus.PAID)

    calculated = to_money(commission.calculated_amount)
    already_paid = to_money(commission.paid_amount)
    remaining = calculated - already_paid
    amount = remaining if payment_amount is None else to_money(payment_amount)

    if amount <= 0 and remaining > 0:
        raise InvalidPayment("Payment amount must be greater than zero")
    if amount > remaining:
        raise InvalidPayment(f"Payment of {amount} exceeds the remaining balance of {remaining}")

    commission.paid_amount = already_paid + amount
    commission.balance_owed = calculated - commission.paid_amount
    if payment_notes:
        commission.payment_notes = payment_notes
    if commission.paid_amount >= calculated:
        commission.status = CommissionStatus.PAID.value
        commission.paid_by = paid_by
        commission.paid_at = datetime.utcnow()

    commission = _save(db, commission)
    logger.info(
        f"Payment of {amount} recorded on commission ID: {commission.id} by user ID: {paid_by}. "
        f"Status: {commission.status}, balance owed: {commission.balance_owed}"
    )
    return commission


def cancel_commission(db: Session, *, commission_id: int, company_id: int, notes: Optional[str] = None) -> LeadCommission:
    commission = _get_or_raise(db, commission_id, company_id)
    _check_transition(commission, CommissionStatus.CANCELLED)

    commission.status = CommissionStatus.CANCELLED.value
    if notes:
        commission.notes = notes
    commission = _save(db, commission)
    logger.info(f"Commission ID: {commission.id} cancelled")
    return commission


def edit_commission(db: Session, *, commission_id: int, company_id: int, obj_in: LeadCommissionEdit) -> LeadCommission:
    """
    Manual edit of a commission's terms. calculated_amount is always re-derived
    from the edited terms and never taken from the caller.
    """
    commission = _get_or_raise(db, commission_id, company_id)
    if commission.status in TERMINAL_STATUSES:
        raise InvalidCommissionTransition(f"Commission {commission.id} is {commission.status} and can no longer be edited")

    for field, value in obj_in.model_dump(exclude_unset=True).items():
        setattr(commission, field, value)

    if commission.commission_type == CommissionType.CUSTOM.value:
        amount = to_money(commission.calculated_amount)
    else:
        amount = calculate_commission(
            commission.commission_type, commission.commission_rate, commission.flat_amount, commission.base_amount
        )
    paid = to_decimal(commission.paid_amount)
    if amount < paid:
        db.rollback()
        raise InvalidPayment(f"Commission amount {amount} would fall below the {paid} already paid")

    commission.calculated_amount = amount
    commission.balance_owed = amount - paid
    commission = _save(db, commission)
    logger.info(f"Commission ID: {commission.id} edited. New amount: {amount}")
    return commission


def delete_commission(db: Session, *, commission_id: int, company_id: int) -> LeadCommission:
    commission = _get_or_raise(db, commission_id, company_id)
    if commission.status == CommissionStatus.PAID.value:
        raise InvalidCommissionTransition(f"Commission {commission.id} is paid and cannot be deleted")
    commission = crud_lead_commission.delete_lead_commission(db, db_obj=commission)
    logger.info(f"Commission ID: {commission.id} deleted")
    return commission

from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
from sqlalchemy.orm import Session

from roofcrm.crud import crud_lead_commission
from roofcrm.schemas.commission import (
    CommissionCancel,
    CommissionPayment,
    LeadCommission,
    LeadCommissionEdit,
)
from roofcrm.core import commission_status
from roofcrm.core.commission_status import (
    CommissionError,
    CommissionNotFound,
    InvalidCommissionTransition,
)
from roofcrm.models.user import User
from roofcrm.db.session import get_db
from roofcrm.core.dependencies import get_current_active_user, get_current_commission_approver

router = APIRouter()


def _to_http(exc: CommissionError) -> HTTPException:
    if isinstance(exc, CommissionNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidCommissionTransition):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@router.get("/{commission_id}", response_model=LeadCommission)
async def read_commission(
    commission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Approvers can read any commission of the company; everyone else only their own.
    """
    commission = crud_lead_commission.get_lead_commission(
        db, commission_id=commission_id, company_id=current_user.company_id
    )
    if not commission:
        raise HTTPException(status_code=404, detail="Commission not found")
    if not current_user.can_approve_commissions and commission.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to view this commission")
    return commission


@router.patch("/{commission_id}", response_model=LeadCommission)
async def edit_commission(
    commission_id: int,
    commission_in: LeadCommissionEdit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_commission_approver),
):
    try:
        return commission_status.edit_commission(
            db, commission_id=commission_id, company_id=current_user.company_id, obj_in=commission_in
        )
    except CommissionError as e:
        raise _to_http(e)


@router.post("/{commission_id}/approve", response_model=LeadCommission)
async def approve_commission(
    commission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_commission_approver),
):
    try:
        return commission_status.approve_commission(
            db, commission_id=commission_id, company_id=current_user.company_id, approved_by=current_user.id
        )
    except CommissionError as e:
        raise _to_http(e)


@router.post("/{commission_id}/pay", response_model=LeadCommission)
async def pay_commission(
    commission_id: int,
    payment_in: Optional[CommissionPayment] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_commission_approver),
):
    """
    Record a payment. An empty body pays the remaining balance.
    """
    payment_in = payment_in or CommissionPayment()
    try:
        return commission_status.mark_commission_paid(
            db,
            commission_id=commission_id,
            company_id=current_user.company_id,
            paid_by=current_user.id,
            payment_amount=payment_in.payment_amount,
            payment_notes=payment_in.payment_notes,
        )
    except CommissionError as e:
        raise _to_http(e)


@router.post("/{commission_id}/cancel", response_model=LeadCommission)
async def cancel_commission(
    commission_id: int,
    cancel_in: Optional[CommissionCancel] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_commission_approver),
):
    cancel_in = cancel_in or CommissionCancel()
    try:
        return commission_status.cancel_commission(
            db, commission_id=commission_id, company_id=current_user.company_id, notes=cancel_in.notes
        )
    except CommissionError as e:
        raise _to_http(e)


@router.delete("/{commission_id}", response_model=LeadCommission)
async def delete_commission(
    commission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_commission_approver),
):
    try:
        return commission_status.delete_commission(db, commission_id=commission_id, company_id=current_user.company_id)
    except CommissionError as e:
        raise _to_http(e)

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List

from roofcrm.crud import crud_invoice, crud_lead, crud_lead_commission, crud_user
from roofcrm.schemas.lead import Lead, LeadCreate, LeadAssignment, LeadAssignmentResult
from roofcrm.schemas.invoice import CustomerInvoice, CustomerInvoiceCreate, InvoiceWithCommissions
from roofcrm.schemas.commission import CommissionSummary, LeadCommission, RefreshResult
from roofcrm.core.commission_types import AssignmentField
from roofcrm.core.commissions_calculator import auto_create_commission
from roofcrm.core.commission_recalculator import refresh_lead_commissions
from roofcrm.models.user import User
from roofcrm.db.session import get_db
from roofcrm.core.dependencies import get_current_active_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_lead_or_404(db: Session, lead_id: int, company_id: int):
    lead = crud_lead.get_lead(db, lead_id=lead_id, company_id=company_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


@router.post("/", response_model=Lead, status_code=201)
async def create_new_lead(
    lead_in: LeadCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Create a lead in the caller's company. Slots given here are stored as-is;
    commissions are produced by assignment changes and refreshes.
    """
    return crud_lead.create_lead(db, company_id=current_user.company_id, obj_in=lead_in)


@router.get("/{lead_id}", response_model=Lead)
async def read_lead(
    lead_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return _get_lead_or_404(db, lead_id, current_user.company_id)


@router.put("/{lead_id}/assignments/{assignment_field}", response_model=LeadAssignmentResult)
async def assign_lead_slot(
    lead_id: int,
    assignment_field: AssignmentField,
    assignment_in: LeadAssignment,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Put a user into one of the lead's role slots (or clear it) and reconcile commissions.
    The assignment sticks even when the commission side effect fails.
    """
    if assignment_field.is_override:
        raise HTTPException(status_code=400, detail=f"{assignment_field.value} is not a lead role slot")

    company_id = current_user.company_id
    lead = _get_lead_or_404(db, lead_id, company_id)
    if assignment_in.user_id is not None:
        if not crud_user.get_user(db, user_id=assignment_in.user_id, company_id=company_id):
            raise HTTPException(status_code=404, detail="User not found")

    lead = crud_lead.update_lead_assignment(
        db, db_obj=lead, assignment_field=assignment_field, user_id=assignment_in.user_id
    )
    result = await auto_create_commission(
        db,
        lead_id=lead.id,
        user_id=assignment_in.user_id,
        company_id=company_id,
        current_user_id=current_user.id,
        assignment_field=assignment_field,
        skip_cancel_others=assignment_in.skip_cancel_others,
    )
    if not result.success:
        logger.warning(f"Lead ID: {lead.id} assigned, but commission processing failed: {result.message}")

    db.refresh(lead)
    return LeadAssignmentResult(lead=lead, commission=result)


@router.post("/{lead_id}/commissions/refresh", response_model=RefreshResult)
async def refresh_commissions(
    lead_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    _get_lead_or_404(db, lead_id, current_user.company_id)
    return await refresh_lead_commissions(db, lead_id, current_user.company_id, current_user_id=current_user.id)


@router.get("/{lead_id}/commissions", response_model=List[LeadCommission])
async def read_lead_commissions(
    lead_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    _get_lead_or_404(db, lead_id, current_user.company_id)
    return crud_lead_commission.get_lead_commissions(db, lead_id=lead_id, company_id=current_user.company_id)


@router.get("/{lead_id}/commissions/summary", response_model=CommissionSummary)
async def read_lead_commission_summary(
    lead_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    _get_lead_or_404(db, lead_id, current_user.company_id)
    return crud_lead_commission.get_lead_commission_summary(db, lead_id=lead_id, company_id=current_user.company_id)


@router.post("/{lead_id}/invoices", response_model=InvoiceWithCommissions, status_code=201)
async def create_lead_invoice(
    lead_id: int,
    invoice_in: CustomerInvoiceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Record a new invoice for the lead. It becomes the commission base and the
    lead's commissions are refreshed against it. A failed refresh does not undo the invoice.
    """
    company_id = current_user.company_id
    _get_lead_or_404(db, lead_id, company_id)
    invoice = crud_invoice.create_invoice(db, lead_id=lead_id, company_id=company_id, obj_in=invoice_in)

    try:
        refresh = await refresh_lead_commissions(db, lead_id, company_id, current_user_id=current_user.id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Commission refresh failed after invoice ID: {invoice.id} on lead ID: {lead_id}: {e}", exc_info=True)
        refresh = RefreshResult(success=False, message="Commission refresh failed")

    db.refresh(invoice)
    return InvoiceWithCommissions(invoice=invoice, commissions=refresh)


@router.get("/{lead_id}/invoices", response_model=List[CustomerInvoice])
async def read_lead_invoices(
    lead_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Invoices of the lead, newest first. The first one is the commission base.
    """
    _get_lead_or_404(db, lead_id, current_user.company_id)
    return crud_invoice.get_invoices_for_lead(db, lead_id=lead_id, company_id=current_user.company_id)

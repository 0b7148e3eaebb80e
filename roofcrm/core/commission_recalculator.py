import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roofcrm.core.base_amount import get_latest_invoice_total
from roofcrm.core.commission_math import calculate_commission, to_decimal, to_money
from roofcrm.core.commission_types import LEAD_ASSIGNMENT_FIELDS, OVERRIDE_FIELDS, CommissionType
from roofcrm.core.commissions_calculator import auto_create_commission, create_office_and_team_commissions
from roofcrm.crud import crud_lead, crud_lead_commission
from roofcrm.schemas.commission import LeadCommissionUpdate, RecalculateResult, RefreshResult

logger = logging.getLogger(__name__)

_KNOWN_TYPES = {t.value for t in CommissionType} | {"flat_per_job"}
_OVERRIDE_VALUES = {f.value for f in OVERRIDE_FIELDS}


async def recalculate_lead_commissions(db: Session, lead_id: int, company_id: int) -> RecalculateResult:
    """
    Re-derive amounts of the lead's pending/approved commissions from their stored terms.

    Override rows are re-based on the current invoice total first. Role rows keep
    their base, which only the reconciler moves. Rows are written only when a value changed.
    """
    result = RecalculateResult(success=True)
    try:
        commissions = crud_lead_commission.get_active_commissions_for_lead(db, lead_id=lead_id, company_id=company_id)
        invoice_total = to_money(get_latest_invoice_total(db, lead_id=lead_id, company_id=company_id))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to load commissions for recalculation on lead ID: {lead_id}: {e}", exc_info=True)
        return RecalculateResult(success=False, errors=[str(e)])

    for commission in commissions:
        commission_id = commission.id
        if commission.commission_type not in _KNOWN_TYPES:
            logger.warning(f"Commission ID: {commission_id} has unknown type '{commission.commission_type}'. Skipping.")
            result.errors.append(f"commission {commission_id}: unknown commission type {commission.commission_type}")
            continue
        if commission.commission_type == CommissionType.CUSTOM.value:
            # custom amounts are set by hand and have no formula
            continue

        base_amount = to_money(commission.base_amount)
        if commission.assignment_field in _OVERRIDE_VALUES:
            base_amount = invoice_total
        amount = calculate_commission(
            commission.commission_type, commission.commission_rate, commission.flat_amount, base_amount
        )
        balance = amount - to_decimal(commission.paid_amount)

        if (
            base_amount == to_money(commission.base_amount)
            and amount == to_money(commission.calculated_amount)
            and balance == to_decimal(commission.balance_owed)
        ):
            continue

        try:
            crud_lead_commission.update_lead_commission(
                db,
                db_obj=commission,
                obj_in=LeadCommissionUpdate(base_amount=base_amount, calculated_amount=amount, balance_owed=balance),
            )
            result.updated += 1
            logger.info(f"Recalculated commission ID: {commission_id} on lead ID: {lead_id}: base {base_amount}, amount {amount}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to recalculate commission ID: {commission_id}: {e}", exc_info=True)
            result.errors.append(f"commission {commission_id}: {e}")

    result.success = not result.errors
    return result


async def refresh_lead_commissions(
    db: Session, lead_id: int, company_id: int, current_user_id: Optional[int] = None
) -> RefreshResult:
    """
    Bring every commission on a lead in line with its current assignments and invoice.
    Runs after an invoice is created or revised.
    """
    lead = crud_lead.get_lead(db, lead_id=lead_id, company_id=company_id)
    if not lead:
        return RefreshResult(success=False, message="Lead not found")

    result = RefreshResult(success=True)
    for field in LEAD_ASSIGNMENT_FIELDS:
        user_id = lead.get_assignee(field)
        if user_id is None:
            continue
        outcome = await auto_create_commission(
            db,
            lead_id=lead.id,
            user_id=user_id,
            company_id=company_id,
            current_user_id=current_user_id,
            assignment_field=field,
            skip_cancel_others=True,
        )
        result.assignments.append(outcome)

    if lead.sales_rep_id is not None:
        result.fan_out = await create_office_and_team_commissions(db, lead.id, lead.sales_rep_id, company_id)

    result.recalculation = await recalculate_lead_commissions(db, lead.id, company_id)

    failed = [a for a in result.assignments if not a.success]
    result.success = not failed and result.recalculation.success
    result.message = f"Refreshed {len(result.assignments)} assignment(s), recalculated {result.recalculation.updated} commission(s)"
    logger.info(f"Lead ID: {lead.id}: {result.message}")
    return result

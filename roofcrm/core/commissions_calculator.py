import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from roofcrm.core.base_amount import BaseAmount, calculate_base_amount, get_latest_invoice_total
from roofcrm.core.commission_config import (
    CommissionConfig,
    load_commission_context,
    normalize_commission_type,
    resolve_commission_config,
)
from roofcrm.core.commission_math import calculate_commission, to_decimal, to_money
from roofcrm.core.commission_types import (
    OVERRIDE_FIELDS,
    AssignmentField,
    CommissionStatus,
    CommissionType,
    coerce_paid_when,
)
from roofcrm.crud import crud_lead, crud_lead_commission, crud_location, crud_user
from roofcrm.models.lead import Lead
from roofcrm.models.lead_commission import LeadCommission
from roofcrm.schemas.commission import (
    CommissionResult,
    FanOutResult,
    LeadCommissionCreate,
    LeadCommissionUpdate,
)

logger = logging.getLogger(__name__)

UNASSIGNED_NOTE = "Lead unassigned - commission cancelled"
REASSIGNED_NOTE = "Lead reassigned to different user"

_OVERRIDE_VALUES = {f.value for f in OVERRIDE_FIELDS}


def _fmt(amount) -> str:
    return f"${to_money(amount):,.2f}"


def _cancel(db: Session, commission: LeadCommission, note: str) -> None:
    crud_lead_commission.update_lead_commission(
        db, db_obj=commission, obj_in=LeadCommissionUpdate(status=CommissionStatus.CANCELLED, notes=note)
    )
    logger.info(f"Cancelled commission ID: {commission.id} (lead ID: {commission.lead_id}, user ID: {commission.user_id}): {note}")


async def auto_create_commission(
    db: Session,
    lead_id: int,
    user_id: Optional[int],
    company_id: int,
    current_user_id: Optional[int] = None,
    assignment_field: AssignmentField = AssignmentField.SALES_REP,
    skip_cancel_others: bool = False,
) -> CommissionResult:
    """
    Create or top up the commission of the user assigned to a lead role slot.

    - user_id=None cancels every pending/approved commission on the lead.
    - Unless skip_cancel_others is set, office manager / team lead overrides are fanned
      out first and other users' role commissions on the lead are cancelled.
    - The user's active row for this slot is topped up by the invoice delta; without
      one a new pending row is inserted.

    Failures are rolled back, logged and returned as success=False. Nothing is raised.
    """
    try:
        assignment_field = AssignmentField(assignment_field)
    except ValueError:
        return CommissionResult(success=False, message=f"Unknown assignment field: {assignment_field}")
    if assignment_field.is_override:
        return CommissionResult(success=False, message="Override commissions are only created by the office/team fan-out")

    try:
        if user_id is None:
            return _cancel_lead_commissions(db, lead_id=lead_id, company_id=company_id)
        return await _reconcile_assignment(
            db,
            lead_id=lead_id,
            user_id=user_id,
            company_id=company_id,
            current_user_id=current_user_id,
            assignment_field=assignment_field,
            skip_cancel_others=skip_cancel_others,
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error processing commission for lead ID: {lead_id}, user ID: {user_id}: {e}", exc_info=True)
        return CommissionResult(success=False, message="Database error while processing commission")
    except Exception as e:
        db.rollback()
        logger.error(f"Unexpected error processing commission for lead ID: {lead_id}, user ID: {user_id}: {e}", exc_info=True)
        return CommissionResult(success=False, message="Unexpected error")


def _cancel_lead_commissions(db: Session, *, lead_id: int, company_id: int) -> CommissionResult:
    commissions = crud_lead_commission.get_active_commissions_for_lead(db, lead_id=lead_id, company_id=company_id)
    for commission in commissions:
        _cancel(db, commission, UNASSIGNED_NOTE)
    logger.info(f"Lead ID: {lead_id} unassigned. Cancelled {len(commissions)} commission(s).")
    return CommissionResult(success=True, message="Existing commissions cancelled", cancelled_count=len(commissions))


async def _reconcile_assignment(
    db: Session,
    *,
    lead_id: int,
    user_id: int,
    company_id: int,
    current_user_id: Optional[int],
    assignment_field: AssignmentField,
    skip_cancel_others: bool,
) -> CommissionResult:
    lead = crud_lead.get_lead(db, lead_id=lead_id, company_id=company_id)
    if not lead:
        logger.warning(f"Lead ID: {lead_id} not found for company ID: {company_id}. No commission processed.")
        return CommissionResult(success=False, message="Lead not found")

    user = crud_user.get_user(db, user_id=user_id, company_id=company_id)
    if not user:
        logger.warning(f"User ID: {user_id} not found for company ID: {company_id}. No commission processed.")
        return CommissionResult(success=False, message="User not found")

    # Overrides hang off the sales rep; the slot may not be written yet when assigning one
    sales_rep_id = lead.sales_rep_id
    if sales_rep_id is None and assignment_field is AssignmentField.SALES_REP:
        sales_rep_id = user.id

    if not skip_cancel_others and sales_rep_id is not None:
        await create_office_and_team_commissions(db, lead.id, sales_rep_id, company_id)

    context = load_commission_context(db, user=user, company_id=company_id, location_id=lead.location_id)
    config = resolve_commission_config(context, assignment_field)
    if not config.is_configured:
        logger.info(
            f"User ID: {user.id} has no commission configured for {assignment_field.value} on lead ID: {lead.id}. Skipping."
        )
        return CommissionResult(success=True, message="No commission configured for user")

    base = calculate_base_amount(db, lead_id=lead.id, user_id=user.id, company_id=company_id)
    if base.invoice_total == 0:
        logger.info(f"Lead ID: {lead.id} has no invoice yet. Commission will start from a $0 base.")

    cancelled = 0
    if not skip_cancel_others:
        cancelled = _cancel_other_assignees(db, lead=lead, keep_user_id=user.id, company_id=company_id)

    existing = crud_lead_commission.get_active_commission(
        db, lead_id=lead.id, user_id=user.id, assignment_field=assignment_field, company_id=company_id
    )
    if existing:
        commission = _top_up(db, existing, config, base)
        action = "updated"
    else:
        commission = _insert(
            db,
            lead=lead,
            user_id=user.id,
            company_id=company_id,
            assignment_field=assignment_field,
            config=config,
            base=base,
            created_by=current_user_id,
        )
        action = "created"

    logger.info(
        f"Commission {action} for lead ID: {lead.id}, user ID: {user.id}, field: {assignment_field.value}, "
        f"source: {config.source.value}, base: {_fmt(commission.base_amount)}, amount: {_fmt(commission.calculated_amount)}"
    )
    return CommissionResult(
        success=True,
        message=f"Commission {action}: {_fmt(commission.calculated_amount)}",
        commission_id=commission.id,
        amount=to_money(commission.calculated_amount),
        cancelled_count=cancelled,
    )


def _cancel_other_assignees(db: Session, *, lead: Lead, keep_user_id: int, company_id: int) -> int:
    """
    Reassignment cancels every other user's role commission on the lead, whatever
    slot it belongs to. Override rows are not role slots and stay.
    """
    cancelled = 0
    for commission in crud_lead_commission.get_active_commissions_for_lead(db, lead_id=lead.id, company_id=company_id):
        if commission.user_id == keep_user_id or commission.assignment_field in _OVERRIDE_VALUES:
            continue
        _cancel(db, commission, REASSIGNED_NOTE)
        cancelled += 1
    return cancelled


def _note(prefix: str, base_amount, amount, config: CommissionConfig) -> str:
    return f"{prefix}: Base {_fmt(base_amount)}, Commission: {_fmt(amount)} ({config.label})"


def _top_up(db: Session, commission: LeadCommission, config: CommissionConfig, base: BaseAmount) -> LeadCommission:
    new_base = to_money(to_decimal(commission.base_amount) + base.delta)
    amount = calculate_commission(config.commission_type, config.commission_rate, config.flat_amount, new_base)
    return crud_lead_commission.update_lead_commission(
        db,
        db_obj=commission,
        obj_in=LeadCommissionUpdate(
            commission_plan_id=config.commission_plan_id,
            commission_type=config.commission_type,
            commission_rate=config.commission_rate,
            flat_amount=config.flat_amount,
            base_amount=new_base,
            calculated_amount=amount,
            paid_when=config.paid_when,
            notes=_note("Auto-updated", new_base, amount, config),
        ),
    )


def _insert(
    db: Session,
    *,
    lead: Lead,
    user_id: int,
    company_id: int,
    assignment_field: AssignmentField,
    config: CommissionConfig,
    base: BaseAmount,
    created_by: Optional[int],
) -> LeadCommission:
    lead_id = lead.id
    base_amount = to_money(base.delta)
    amount = calculate_commission(config.commission_type, config.commission_rate, config.flat_amount, base_amount)
    obj_in = LeadCommissionCreate(
        user_id=user_id,
        commission_plan_id=config.commission_plan_id,
        assignment_field=assignment_field,
        commission_type=config.commission_type,
        commission_rate=config.commission_rate,
        flat_amount=config.flat_amount,
        base_amount=base_amount,
        calculated_amount=amount,
        paid_when=config.paid_when,
        notes=_note("Auto-created", base_amount, amount, config),
        created_by=created_by,
    )
    try:
        return crud_lead_commission.create_lead_commission(db, lead_id=lead_id, company_id=company_id, obj_in=obj_in)
    except IntegrityError:
        # A concurrent request inserted the same slot first; fold our delta into its row
        db.rollback()
        logger.warning(
            f"Commission for lead ID: {lead_id}, user ID: {user_id}, field: {assignment_field.value} "
            f"was created concurrently. Merging into the existing row."
        )
        existing = crud_lead_commission.get_active_commission(
            db, lead_id=lead_id, user_id=user_id, assignment_field=assignment_field, company_id=company_id
        )
        if existing is None:
            raise
        fresh_base = calculate_base_amount(db, lead_id=lead_id, user_id=user_id, company_id=company_id)
        return _top_up(db, existing, config, fresh_base)


async def create_office_and_team_commissions(
    db: Session, lead_id: int, sales_rep_id: int, company_id: int
) -> FanOutResult:
    """
    Give the lead's office managers and the sales rep's team lead their override
    commission, once per lead. Anyone who already has a commission on the lead is
    skipped, so repeated calls are no-ops.

    Candidates are handled one at a time; a failure on one is logged and the next
    one still runs.
    """
    result = FanOutResult()
    try:
        lead = crud_lead.get_lead(db, lead_id=lead_id, company_id=company_id)
        if not lead:
            result.errors.append("Lead not found")
            return result
        if lead.location_id is None:
            result.skipped.append("lead has no location")
            logger.info(f"Lead ID: {lead_id} has no location. No office/team overrides.")
            return result
        location_id = lead.location_id
        invoice_total = get_latest_invoice_total(db, lead_id=lead_id, company_id=company_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to load lead ID: {lead_id} for override commissions: {e}", exc_info=True)
        result.errors.append(f"lead lookup: {e}")
        return result

    _create_office_overrides(db, lead_id, location_id, sales_rep_id, company_id, invoice_total, result)
    _create_team_lead_override(db, lead_id, location_id, sales_rep_id, company_id, invoice_total, result)
    return result


def _create_office_overrides(
    db: Session,
    lead_id: int,
    location_id: int,
    sales_rep_id: int,
    company_id: int,
    invoice_total: Decimal,
    result: FanOutResult,
) -> None:
    try:
        managers = crud_location.get_office_managers_for_location(db, location_id=location_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to load office managers for location ID: {location_id}: {e}", exc_info=True)
        result.errors.append(f"office managers lookup: {e}")
        return

    for manager in managers:
        manager_id = manager.user_id
        try:
            if crud_lead_commission.user_has_commission_on_lead(
                db, lead_id=lead_id, user_id=manager_id, company_id=company_id
            ):
                result.skipped.append(f"office manager {manager_id}: already has a commission on the lead")
                logger.info(f"Office manager ID: {manager_id} already has a commission on lead ID: {lead_id}. Skipping.")
                continue
            if not manager.include_own_sales and manager_id == sales_rep_id:
                result.skipped.append(f"office manager {manager_id}: own sale excluded")
                logger.info(f"Office manager ID: {manager_id} is the sales rep on lead ID: {lead_id} and excludes own sales.")
                continue

            commission_type = normalize_commission_type(manager.commission_type)
            if commission_type is CommissionType.FLAT_AMOUNT:
                rate, flat = None, to_decimal(manager.flat_commission_amount)
            else:
                rate, flat = to_decimal(manager.commission_rate), None
            amount = calculate_commission(commission_type, rate, flat, invoice_total)

            crud_lead_commission.create_lead_commission(
                db,
                lead_id=lead_id,
                company_id=company_id,
                obj_in=LeadCommissionCreate(
                    user_id=manager_id,
                    assignment_field=AssignmentField.OFFICE_OVERRIDE,
                    commission_type=commission_type,
                    commission_rate=rate,
                    flat_amount=flat,
                    base_amount=to_money(invoice_total),
                    calculated_amount=amount,
                    paid_when=coerce_paid_when(manager.paid_when),
                    notes=f"Office override: Base {_fmt(invoice_total)}, Commission: {_fmt(amount)}",
                ),
            )
            result.office_created.append(manager_id)
            logger.info(f"Created office override for lead ID: {lead_id}, user ID: {manager_id}, amount: {_fmt(amount)}")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create office override for lead ID: {lead_id}, user ID: {manager_id}: {e}", exc_info=True)
            result.errors.append(f"office manager {manager_id}: {e}")


def _create_team_lead_override(
    db: Session,
    lead_id: int,
    location_id: int,
    sales_rep_id: int,
    company_id: int,
    invoice_total: Decimal,
    result: FanOutResult,
) -> None:
    try:
        membership = crud_location.get_location_user(db, location_id=location_id, user_id=sales_rep_id)
        if membership is None or membership.team_id is None:
            result.skipped.append("team lead: sales rep is not on a team")
            return

        team = crud_location.get_team(db, team_id=membership.team_id)
        if team is None or not team.is_active or team.company_id != company_id:
            result.skipped.append("team lead: team inactive or missing")
            logger.info(f"Team ID: {membership.team_id} is inactive or missing. No team lead override for lead ID: {lead_id}.")
            return
        if team.team_lead_id is None:
            result.skipped.append("team lead: team has no lead")
            return

        team_lead_id = team.team_lead_id
        rate = to_decimal(team.commission_rate)
        if rate <= 0:
            result.skipped.append(f"team lead {team_lead_id}: no override rate")
            return
        if not team.include_own_sales and team_lead_id == sales_rep_id:
            result.skipped.append(f"team lead {team_lead_id}: own sale excluded")
            logger.info(f"Team lead ID: {team_lead_id} is the sales rep on lead ID: {lead_id} and excludes own sales.")
            return
        if crud_lead_commission.user_has_commission_on_lead(db, lead_id=lead_id, user_id=team_lead_id, company_id=company_id):
            result.skipped.append(f"team lead {team_lead_id}: already has a commission on the lead")
            logger.info(f"Team lead ID: {team_lead_id} already has a commission on lead ID: {lead_id}. Skipping.")
            return

        amount = calculate_commission(CommissionType.PERCENTAGE, rate, None, invoice_total)
        crud_lead_commission.create_lead_commission(
            db,
            lead_id=lead_id,
            company_id=company_id,
            obj_in=LeadCommissionCreate(
                user_id=team_lead_id,
                assignment_field=AssignmentField.TEAM_LEAD_OVERRIDE,
                commission_type=CommissionType.PERCENTAGE,
                commission_rate=rate,
                base_amount=to_money(invoice_total),
                calculated_amount=amount,
                paid_when=coerce_paid_when(team.paid_when),
                notes=f"Team lead override ({team.name}): {rate}% of {_fmt(invoice_total)} = {_fmt(amount)}",
            ),
        )
        result.team_lead_created = team_lead_id
        logger.info(f"Created team lead override for lead ID: {lead_id}, user ID: {team_lead_id}, amount: {_fmt(amount)}")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create team lead override for lead ID: {lead_id}: {e}", exc_info=True)
        result.errors.append(f"team lead: {e}")

import pytest
from decimal import Decimal

from roofcrm.core.commission_recalculator import recalculate_lead_commissions, refresh_lead_commissions
from roofcrm.core.commission_types import AssignmentField
from roofcrm.crud import crud_lead_commission, crud_location
from roofcrm.models.lead_commission import LeadCommission as LeadCommissionModel
from roofcrm.schemas.commission import LeadCommissionCreate
from roofcrm.schemas.location import LocationUserCreate

pytestmark = pytest.mark.core


@pytest.fixture
def office_manager(db_session, make_user, location):
    manager = make_user(role="office")
    crud_location.create_location_user(
        db_session,
        obj_in=LocationUserCreate(
            location_id=location.id, user_id=manager.id, commission_enabled=True,
            commission_type="percentage", commission_rate=Decimal("2"),
        ),
    )
    return manager


def _row(db, lead, user, field):
    return (
        db.query(LeadCommissionModel)
        .filter(
            LeadCommissionModel.lead_id == lead.id,
            LeadCommissionModel.user_id == user.id,
            LeadCommissionModel.assignment_field == field.value,
            LeadCommissionModel.status.in_(["pending", "approved"]),
        )
        .one()
    )


@pytest.mark.asyncio
async def test_refresh_tops_up_roles_and_rebases_overrides(
    db_session, company, sales_rep, office_manager, make_lead, add_invoice
):
    lead = make_lead(sales_rep_id=sales_rep.id)
    add_invoice(lead, 1000)
    first = await refresh_lead_commissions(db_session, lead.id, company.id)

    assert first.success
    assert first.fan_out.office_created == [office_manager.id]
    assert _row(db_session, lead, sales_rep, AssignmentField.SALES_REP).calculated_amount == Decimal("100.00")
    assert _row(db_session, lead, office_manager, AssignmentField.OFFICE_OVERRIDE).calculated_amount == Decimal("20.00")

    add_invoice(lead, 1500)
    second = await refresh_lead_commissions(db_session, lead.id, company.id)

    assert second.success
    assert second.fan_out.office_created == []
    sales_row = _row(db_session, lead, sales_rep, AssignmentField.SALES_REP)
    assert sales_row.base_amount == Decimal("1500.00")
    assert sales_row.calculated_amount == Decimal("150.00")
    office_row = _row(db_session, lead, office_manager, AssignmentField.OFFICE_OVERRIDE)
    assert office_row.base_amount == Decimal("1500.00")
    assert office_row.calculated_amount == Decimal("30.00")
    assert office_row.balance_owed == Decimal("30.00")
    assert second.recalculation.updated == 1


@pytest.mark.asyncio
async def test_refresh_covers_every_occupied_slot(db_session, company, make_user, sales_rep, make_lead, add_invoice):
    marketer = make_user(role="marketing", marketing_commission_type="percentage", marketing_commission_rate=Decimal("3"))
    lead = make_lead(sales_rep_id=sales_rep.id, marketing_rep_id=marketer.id)
    add_invoice(lead, 2000)

    result = await refresh_lead_commissions(db_session, lead.id, company.id)

    assert len(result.assignments) == 2
    assert all(a.success for a in result.assignments)
    assert _row(db_session, lead, sales_rep, AssignmentField.SALES_REP).calculated_amount == Decimal("200.00")
    assert _row(db_session, lead, marketer, AssignmentField.MARKETING_REP).calculated_amount == Decimal("60.00")


@pytest.mark.asyncio
async def test_refresh_unknown_lead(db_session, company):
    result = await refresh_lead_commissions(db_session, 4242, company.id)
    assert not result.success
    assert result.message == "Lead not found"


@pytest.mark.asyncio
async def test_recalculate_only_writes_changed_rows(db_session, company, sales_rep, make_lead, add_invoice):
    lead = make_lead(sales_rep_id=sales_rep.id)
    add_invoice(lead, 2000)
    await refresh_lead_commissions(db_session, lead.id, company.id)

    result = await recalculate_lead_commissions(db_session, lead.id, company.id)

    assert result.success
    assert result.updated == 0


@pytest.mark.asyncio
async def test_recalculate_fixes_drifted_amounts(db_session, company, sales_rep, make_lead, add_invoice):
    lead = make_lead(sales_rep_id=sales_rep.id)
    add_invoice(lead, 2000)
    await refresh_lead_commissions(db_session, lead.id, company.id)
    row = _row(db_session, lead, sales_rep, AssignmentField.SALES_REP)
    row.calculated_amount = Decimal("1.00")
    db_session.commit()

    result = await recalculate_lead_commissions(db_session, lead.id, company.id)

    assert result.updated == 1
    db_session.refresh(row)
    assert row.calculated_amount == Decimal("200.00")
    assert row.balance_owed == Decimal("200.00")


@pytest.mark.asyncio
async def test_recalculate_reports_unknown_types(db_session, company, sales_rep, make_lead):
    lead = make_lead()
    row = crud_lead_commission.create_lead_commission(
        db_session,
        lead_id=lead.id,
        company_id=company.id,
        obj_in=LeadCommissionCreate(
            user_id=sales_rep.id, commission_type="percentage", commission_rate=Decimal("10"),
            base_amount=Decimal("100"), calculated_amount=Decimal("10"),
        ),
    )
    row.commission_type = "tiered"
    db_session.commit()

    result = await recalculate_lead_commissions(db_session, lead.id, company.id)

    assert not result.success
    assert result.updated == 0
    assert len(result.errors) == 1
    assert "tiered" in result.errors[0]


@pytest.mark.asyncio
async def test_recalculate_leaves_custom_amounts_alone(db_session, company, sales_rep, make_lead):
    lead = make_lead()
    crud_lead_commission.create_lead_commission(
        db_session,
        lead_id=lead.id,
        company_id=company.id,
        obj_in=LeadCommissionCreate(
            user_id=sales_rep.id, commission_type="custom", base_amount=Decimal("100"), calculated_amount=Decimal("75"),
        ),
    )

    result = await recalculate_lead_commissions(db_session, lead.id, company.id)

    assert result.success
    assert result.updated == 0

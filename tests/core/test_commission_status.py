import pytest
from decimal import Decimal

from roofcrm.core import commission_status
from roofcrm.core.commission_status import (
    CommissionNotFound,
    InvalidCommissionTransition,
    InvalidPayment,
    can_transition,
)
from roofcrm.core.commission_types import CommissionStatus
from roofcrm.crud import crud_lead_commission
from roofcrm.schemas.commission import LeadCommissionCreate, LeadCommissionEdit

pytestmark = pytest.mark.core


@pytest.fixture
def approver(make_user):
    return make_user(role="admin", can_approve_commissions=True)


@pytest.fixture
def commission(db_session, company, sales_rep, make_lead):
    lead = make_lead(sales_rep_id=sales_rep.id)
    return crud_lead_commission.create_lead_commission(
        db_session,
        lead_id=lead.id,
        company_id=company.id,
        obj_in=LeadCommissionCreate(
            user_id=sales_rep.id,
            commission_type="percentage",
            commission_rate=Decimal("10"),
            base_amount=Decimal("2000"),
            calculated_amount=Decimal("200"),
        ),
    )


def test_transition_table():
    assert can_transition("pending", "approved")
    assert can_transition("pending", "paid")
    assert can_transition("approved", "cancelled")
    assert not can_transition("approved", "pending")
    assert not can_transition("paid", "cancelled")
    assert not can_transition("cancelled", "approved")


def test_approve(db_session, company, commission, approver):
    approved = commission_status.approve_commission(
        db_session, commission_id=commission.id, company_id=company.id, approved_by=approver.id
    )
    assert approved.status == CommissionStatus.APPROVED.value
    assert approved.approved_by == approver.id
    assert approved.approved_at is not None

    with pytest.raises(InvalidCommissionTransition):
        commission_status.approve_commission(
            db_session, commission_id=commission.id, company_id=company.id, approved_by=approver.id
        )


def test_pay_remaining_balance(db_session, company, commission, approver):
    commission_status.approve_commission(db_session, commission_id=commission.id, company_id=company.id, approved_by=approver.id)

    paid = commission_status.mark_commission_paid(
        db_session, commission_id=commission.id, company_id=company.id, paid_by=approver.id, payment_notes="Check #1042"
    )

    assert paid.status == CommissionStatus.PAID.value
    assert paid.paid_amount == Decimal("200.00")
    assert paid.balance_owed == Decimal("0.00")
    assert paid.paid_by == approver.id
    assert paid.paid_at is not None
    assert paid.payment_notes == "Check #1042"


def test_partial_payments(db_session, company, commission, approver):
    commission_status.approve_commission(db_session, commission_id=commission.id, company_id=company.id, approved_by=approver.id)

    partial = commission_status.mark_commission_paid(
        db_session, commission_id=commission.id, company_id=company.id, paid_by=approver.id, payment_amount=Decimal("50")
    )
    assert partial.status == CommissionStatus.APPROVED.value
    assert partial.paid_amount == Decimal("50.00")
    assert partial.balance_owed == Decimal("150.00")
    assert partial.paid_at is None

    final = commission_status.mark_commission_paid(
        db_session, commission_id=commission.id, company_id=company.id, paid_by=approver.id, payment_amount=Decimal("150")
    )
    assert final.status == CommissionStatus.PAID.value
    assert final.balance_owed == Decimal("0.00")


def test_overpayment_is_rejected(db_session, company, commission, approver):
    with pytest.raises(InvalidPayment):
        commission_status.mark_commission_paid(
            db_session, commission_id=commission.id, company_id=company.id, paid_by=approver.id, payment_amount=Decimal("200.01")
        )


def test_pending_can_be_paid_directly(db_session, company, commission, approver):
    paid = commission_status.mark_commission_paid(
        db_session, commission_id=commission.id, company_id=company.id, paid_by=approver.id
    )
    assert paid.status == CommissionStatus.PAID.value


def test_terminal_rows_refuse_changes(db_session, company, commission, approver):
    commission_status.mark_commission_paid(db_session, commission_id=commission.id, company_id=company.id, paid_by=approver.id)

    with pytest.raises(InvalidCommissionTransition):
        commission_status.cancel_commission(db_session, commission_id=commission.id, company_id=company.id)
    with pytest.raises(InvalidCommissionTransition):
        commission_status.edit_commission(
            db_session, commission_id=commission.id, company_id=company.id,
            obj_in=LeadCommissionEdit(commission_rate=Decimal("12")),
        )
    with pytest.raises(InvalidCommissionTransition):
        commission_status.delete_commission(db_session, commission_id=commission.id, company_id=company.id)


def test_cancel(db_session, company, commission):
    cancelled = commission_status.cancel_commission(
        db_session, commission_id=commission.id, company_id=company.id, notes="Job fell through"
    )
    assert cancelled.status == CommissionStatus.CANCELLED.value
    assert cancelled.notes == "Job fell through"


def test_edit_recomputes_amount(db_session, company, commission):
    edited = commission_status.edit_commission(
        db_session, commission_id=commission.id, company_id=company.id,
        obj_in=LeadCommissionEdit(commission_rate=Decimal("12"), notes="Bumped for referral"),
    )
    assert edited.commission_rate == Decimal("12.00")
    assert edited.calculated_amount == Decimal("240.00")
    assert edited.balance_owed == Decimal("240.00")
    assert edited.notes == "Bumped for referral"


def test_edit_cannot_drop_below_paid_amount(db_session, company, commission, approver):
    commission_status.mark_commission_paid(
        db_session, commission_id=commission.id, company_id=company.id, paid_by=approver.id, payment_amount=Decimal("150")
    )
    with pytest.raises(InvalidPayment):
        commission_status.edit_commission(
            db_session, commission_id=commission.id, company_id=company.id,
            obj_in=LeadCommissionEdit(commission_rate=Decimal("5")),
        )


def test_delete_is_soft(db_session, company, commission):
    commission_status.delete_commission(db_session, commission_id=commission.id, company_id=company.id)

    assert crud_lead_commission.get_lead_commission(db_session, commission_id=commission.id, company_id=company.id) is None
    with pytest.raises(CommissionNotFound):
        commission_status.approve_commission(db_session, commission_id=commission.id, company_id=company.id, approved_by=1)


def test_other_company_cannot_touch_commission(db_session, commission, approver):
    with pytest.raises(CommissionNotFound):
        commission_status.approve_commission(
            db_session, commission_id=commission.id, company_id=commission.company_id + 100, approved_by=approver.id
        )

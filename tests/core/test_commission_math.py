import pytest
from decimal import Decimal

from roofcrm.core.commission_math import calculate_commission, to_decimal, to_money
from roofcrm.core.commission_types import CommissionType, PaidWhen, coerce_paid_when, map_plan_paid_when

pytestmark = pytest.mark.core


def test_percentage_of_base():
    assert calculate_commission(CommissionType.PERCENTAGE, Decimal("10"), None, Decimal("2000")) == Decimal("200.00")


def test_percentage_accepts_plain_strings():
    assert calculate_commission("percentage", "2.5", None, "1000") == Decimal("25.00")


def test_percentage_rounds_half_up_to_cents():
    # 33.33 * 7.5% = 2.49975
    assert calculate_commission("percentage", Decimal("7.5"), None, Decimal("33.33")) == Decimal("2.50")
    # 0.10 * 5% = 0.005
    assert calculate_commission("percentage", Decimal("5"), None, Decimal("0.10")) == Decimal("0.01")


def test_flat_amount_ignores_base():
    assert calculate_commission(CommissionType.FLAT_AMOUNT, None, Decimal("250"), Decimal("99999")) == Decimal("250.00")
    assert calculate_commission("flat_per_job", None, Decimal("500"), Decimal("0")) == Decimal("500.00")


def test_missing_terms_count_as_zero():
    assert calculate_commission("percentage", None, None, Decimal("1000")) == Decimal("0.00")
    assert calculate_commission("flat_amount", None, None, Decimal("1000")) == Decimal("0.00")


@pytest.mark.parametrize("commission_type", ["custom", "bonus", None])
def test_unknown_types_produce_zero(commission_type):
    assert calculate_commission(commission_type, Decimal("10"), Decimal("100"), Decimal("1000")) == Decimal("0.00")


def test_to_decimal_tolerates_garbage():
    assert to_decimal(None) == Decimal("0")
    assert to_decimal("not a number") == Decimal("0")
    assert to_decimal(12.5) == Decimal("12.5")
    assert to_money("1.005") == Decimal("1.01")


def test_plan_paid_when_tags_are_translated():
    assert map_plan_paid_when("deposit") == PaidWhen.WHEN_DEPOSIT_PAID
    assert map_plan_paid_when("completed") == PaidWhen.WHEN_JOB_COMPLETED
    assert map_plan_paid_when("collected") == PaidWhen.WHEN_FINAL_PAYMENT
    assert map_plan_paid_when("signed") == PaidWhen.CUSTOM
    assert map_plan_paid_when("when_job_completed") == PaidWhen.WHEN_JOB_COMPLETED
    assert map_plan_paid_when(None) == PaidWhen.WHEN_FINAL_PAYMENT


def test_unknown_paid_when_defaults_to_final_payment():
    assert coerce_paid_when("whenever") == PaidWhen.WHEN_FINAL_PAYMENT
    assert coerce_paid_when(None) == PaidWhen.WHEN_FINAL_PAYMENT

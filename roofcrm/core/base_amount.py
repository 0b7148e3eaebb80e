from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from roofcrm.core.commission_math import to_decimal
from roofcrm.crud import crud_invoice, crud_lead_commission


@dataclass(frozen=True)
class BaseAmount:
    invoice_total: Decimal
    already_commissioned: Decimal
    delta: Decimal


def get_latest_invoice_total(db: Session, *, lead_id: int, company_id: int) -> Decimal:
    """Total of the lead's latest invoice, 0 when it has none yet."""
    invoice = crud_invoice.get_latest_invoice(db, lead_id=lead_id, company_id=company_id)
    return to_decimal(invoice.total) if invoice else Decimal("0")


def calculate_base_amount(db: Session, *, lead_id: int, user_id: int, company_id: int) -> BaseAmount:
    """
    Split the current invoice total into what the user already earns on and what is new.

    The delta never goes negative: a shrinking invoice does not claw back base
    that was already attributed.
    """
    invoice_total = get_latest_invoice_total(db, lead_id=lead_id, company_id=company_id)
    already_commissioned = crud_lead_commission.sum_attributed_base_amount(
        db, lead_id=lead_id, user_id=user_id, company_id=company_id
    )
    delta = max(Decimal("0"), invoice_total - already_commissioned)
    return BaseAmount(invoice_total=invoice_total, already_commissioned=already_commissioned, delta=delta)

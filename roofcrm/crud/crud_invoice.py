from datetime import datetime
from sqlalchemy.orm import Session
from typing import Optional, List

from roofcrm.models.invoice import CustomerInvoice
from roofcrm.schemas.invoice import CustomerInvoiceCreate


def create_invoice(db: Session, *, lead_id: int, company_id: int, obj_in: CustomerInvoiceCreate) -> CustomerInvoice:
    db_obj = CustomerInvoice(**obj_in.model_dump(), lead_id=lead_id, company_id=company_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_latest_invoice(db: Session, *, lead_id: int, company_id: int) -> Optional[CustomerInvoice]:
    """
    The authoritative invoice for a lead: most recently created, not deleted.
    id breaks ties between invoices created within the same second.
    """
    return (
        db.query(CustomerInvoice)
        .filter(
            CustomerInvoice.lead_id == lead_id,
            CustomerInvoice.company_id == company_id,
            CustomerInvoice.deleted_at.is_(None),
        )
        .order_by(CustomerInvoice.created_at.desc(), CustomerInvoice.id.desc())
        .first()
    )


def get_invoices_for_lead(db: Session, *, lead_id: int, company_id: int) -> List[CustomerInvoice]:
    return (
        db.query(CustomerInvoice)
        .filter(
            CustomerInvoice.lead_id == lead_id,
            CustomerInvoice.company_id == company_id,
            CustomerInvoice.deleted_at.is_(None),
        )
        .order_by(CustomerInvoice.created_at.desc(), CustomerInvoice.id.desc())
        .all()
    )


def delete_invoice(db: Session, *, db_obj: CustomerInvoice) -> CustomerInvoice:
    """
    Soft delete. The previous invoice becomes authoritative again.
    """
    db_obj.deleted_at = datetime.utcnow()
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

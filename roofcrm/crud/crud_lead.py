from sqlalchemy.orm import Session
from typing import Optional

from roofcrm.core.commission_types import AssignmentField
from roofcrm.models.lead import Lead
from roofcrm.schemas.lead import LeadCreate


def create_lead(db: Session, *, company_id: int, obj_in: LeadCreate) -> Lead:
    db_obj = Lead(**obj_in.model_dump(), company_id=company_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_lead(db: Session, *, lead_id: int, company_id: int) -> Optional[Lead]:
    """
    Get a non-deleted lead belonging to the company.
    """
    return (
        db.query(Lead)
        .filter(Lead.id == lead_id, Lead.company_id == company_id, Lead.deleted_at.is_(None))
        .first()
    )


def update_lead_assignment(
    db: Session, *, db_obj: Lead, assignment_field: AssignmentField, user_id: Optional[int]
) -> Lead:
    """
    Put a user into (or clear) one of the lead's role slots.
    """
    db_obj.set_assignee(AssignmentField(assignment_field), user_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

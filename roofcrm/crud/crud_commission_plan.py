from sqlalchemy.orm import Session
from typing import Optional

from roofcrm.models.commission_plan import CommissionPlan
from roofcrm.schemas.location import CommissionPlanCreate


def create_commission_plan(db: Session, *, company_id: int, obj_in: CommissionPlanCreate) -> CommissionPlan:
    db_obj = CommissionPlan(**obj_in.model_dump(), company_id=company_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_commission_plan(db: Session, *, plan_id: int, company_id: int) -> Optional[CommissionPlan]:
    """
    Get a non-deleted plan of the company. Inactive plans are still returned;
    users already on them keep earning under them.
    """
    return (
        db.query(CommissionPlan)
        .filter(
            CommissionPlan.id == plan_id,
            CommissionPlan.company_id == company_id,
            CommissionPlan.deleted_at.is_(None),
        )
        .first()
    )


from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from roofcrm.crud import crud_lead_commission
from roofcrm.schemas.commission import LeadCommission
from roofcrm.schemas.user import User as UserSchema
from roofcrm.core.commission_types import CommissionStatus
from roofcrm.models.user import User
from roofcrm.db.session import get_db
from roofcrm.core.dependencies import get_current_active_user

router = APIRouter()


@router.get("/me", response_model=UserSchema)
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.get("/me/commissions", response_model=List[LeadCommission])
async def read_my_commissions(
    status: Optional[CommissionStatus] = Query(None),
    lead_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Commissions earned by the authenticated user across all leads.
    """
    return crud_lead_commission.get_user_commissions(
        db,
        user_id=current_user.id,
        company_id=current_user.company_id,
        status=status.value if status else None,
        lead_id=lead_id,
        skip=skip,
        limit=limit,
    )

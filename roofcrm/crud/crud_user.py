from sqlalchemy.orm import Session
from typing import Optional

from roofcrm.models.user import User
from roofcrm.schemas.user import UserCreate


def create_user(db: Session, *, company_id: int, obj_in: UserCreate) -> User:
    db_obj = User(**obj_in.model_dump(), company_id=company_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_user(db: Session, *, user_id: int, company_id: Optional[int] = None) -> Optional[User]:
    """
    Get a non-deleted user. Pass company_id to enforce tenant isolation.
    """
    query = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None))
    if company_id is not None:
        query = query.filter(User.company_id == company_id)
    return query.first()

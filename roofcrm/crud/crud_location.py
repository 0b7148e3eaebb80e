from sqlalchemy.orm import Session, joinedload
from typing import Optional, List

from roofcrm.core.commission_types import UserRole
from roofcrm.models.company import Company, Location
from roofcrm.models.location_user import LocationUser, Team
from roofcrm.models.user import User
from roofcrm.schemas.location import LocationUserCreate, TeamCreate


def create_company(db: Session, *, name: str) -> Company:
    db_obj = Company(name=name)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def create_location(db: Session, *, company_id: int, name: str) -> Location:
    db_obj = Location(company_id=company_id, name=name)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def create_team(db: Session, *, company_id: int, obj_in: TeamCreate) -> Team:
    db_obj = Team(**obj_in.model_dump(), company_id=company_id)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_team(db: Session, *, team_id: int) -> Optional[Team]:
    """
    Get a non-deleted team. Callers check is_active themselves.
    """
    return db.query(Team).filter(Team.id == team_id, Team.deleted_at.is_(None)).first()


def create_location_user(db: Session, *, obj_in: LocationUserCreate) -> LocationUser:
    db_obj = LocationUser(**obj_in.model_dump())
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_location_user(db: Session, *, location_id: int, user_id: int) -> Optional[LocationUser]:
    return (
        db.query(LocationUser)
        .filter(LocationUser.location_id == location_id, LocationUser.user_id == user_id)
        .first()
    )


def get_office_managers_for_location(db: Session, *, location_id: int) -> List[LocationUser]:
    """
    Location users with role "office" and commissions enabled at this location.
    Inactive and deleted users are left out.
    """
    return (
        db.query(LocationUser)
        .join(User, User.id == LocationUser.user_id)
        .options(joinedload(LocationUser.user))
        .filter(
            LocationUser.location_id == location_id,
            LocationUser.commission_enabled.is_(True),
            User.role == UserRole.OFFICE.value,
            User.is_active.is_(True),
            User.deleted_at.is_(None),
        )
        .order_by(LocationUser.id.asc())
        .all()
    )

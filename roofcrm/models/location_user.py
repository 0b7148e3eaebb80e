from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from roofcrm.db.base_class import Base

class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("company.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("location.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    team_lead_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    commission_rate = Column(Numeric(5, 2), nullable=False, default=0) # override % paid to the team lead
    paid_when = Column(String(50), nullable=True)
    include_own_sales = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    team_lead = relationship("User")

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}', team_lead_id={self.team_lead_id})>"


class LocationUser(Base):
    __tablename__ = "location_users"
    __table_args__ = (UniqueConstraint("location_id", "user_id", name="uq_location_users_location_user"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    location_id = Column(Integer, ForeignKey("location.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)

    # Location-specific commission override
    commission_enabled = Column(Boolean, default=False, nullable=False)
    commission_type = Column(String(20), nullable=True) # percentage | flat_amount
    commission_rate = Column(Numeric(5, 2), nullable=True)
    flat_commission_amount = Column(Numeric(10, 2), nullable=True)
    paid_when = Column(String(50), nullable=True)
    include_own_sales = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User")
    team = relationship("Team")

    def __repr__(self):
        return f"<LocationUser(location_id={self.location_id}, user_id={self.user_id}, team_id={self.team_id})>"

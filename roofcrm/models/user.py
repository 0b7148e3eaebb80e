from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey, func
from sqlalchemy.orm import relationship
from roofcrm.db.base_class import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("company.id"), nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default="sales") # admin, office, sales_manager, sales, production, marketing
    is_active = Column(Boolean, default=True, nullable=False)
    can_approve_commissions = Column(Boolean, default=False, nullable=False)

    # Legacy plan assignment; wins over every other commission setting when present
    commission_plan_id = Column(Integer, ForeignKey("commission_plans.id"), nullable=True)

    # Role-based commission settings, one block per commission role
    sales_commission_type = Column(String(20), nullable=True) # percentage | flat_amount
    sales_commission_rate = Column(Numeric(5, 2), nullable=True)
    sales_flat_amount = Column(Numeric(10, 2), nullable=True)
    sales_paid_when = Column(String(50), nullable=True)

    marketing_commission_type = Column(String(20), nullable=True)
    marketing_commission_rate = Column(Numeric(5, 2), nullable=True)
    marketing_flat_amount = Column(Numeric(10, 2), nullable=True)
    marketing_paid_when = Column(String(50), nullable=True)

    production_commission_type = Column(String(20), nullable=True)
    production_commission_rate = Column(Numeric(5, 2), nullable=True)
    production_flat_amount = Column(Numeric(10, 2), nullable=True)
    production_paid_when = Column(String(50), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    commission_plan = relationship("CommissionPlan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

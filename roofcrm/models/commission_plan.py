from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey, func
from roofcrm.db.base_class import Base

class CommissionPlan(Base):
    __tablename__ = "commission_plans"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("company.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    commission_type = Column(String(50), nullable=False, default="percentage") # percentage, flat_per_job, ...
    commission_rate = Column(Numeric(5, 2), nullable=True)
    flat_amount = Column(Numeric(10, 2), nullable=True)
    paid_when = Column(String(50), nullable=True) # deposit, completed, collected, signed
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<CommissionPlan(id={self.id}, name='{self.name}', type='{self.commission_type}')>"

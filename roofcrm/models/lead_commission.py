from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey, Index, func, text
from sqlalchemy.orm import relationship
from roofcrm.db.base_class import Base

# At most one live (pending/approved) row per (lead, user, slot)
_ACTIVE_ROW = "status IN ('pending', 'approved') AND deleted_at IS NULL"

class LeadCommission(Base):
    __tablename__ = "lead_commissions"
    __table_args__ = (
        Index(
            "uq_lead_commissions_active_slot",
            "lead_id", "user_id", "assignment_field",
            unique=True,
            sqlite_where=text(_ACTIVE_ROW),
            postgresql_where=text(_ACTIVE_ROW),
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("company.id"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True) # User who earns this commission
    commission_plan_id = Column(Integer, ForeignKey("commission_plans.id"), nullable=True)
    assignment_field = Column(String(50), nullable=False, default="sales_rep_id", index=True)

    commission_type = Column(String(20), nullable=False) # percentage | flat_amount | custom
    commission_rate = Column(Numeric(5, 2), nullable=True)
    flat_amount = Column(Numeric(10, 2), nullable=True)
    base_amount = Column(Numeric(10, 2), nullable=False, default=0) # Invoice slice attributed to this row
    calculated_amount = Column(Numeric(10, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(10, 2), nullable=False, default=0)
    balance_owed = Column(Numeric(10, 2), nullable=False, default=0)

    paid_when = Column(String(50), nullable=False, default="when_final_payment")
    status = Column(String(20), nullable=False, default="pending", index=True) # pending, approved, paid, cancelled

    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    paid_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    payment_notes = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    user = relationship("User", foreign_keys=[user_id])
    commission_plan = relationship("CommissionPlan")

    def __repr__(self):
        return (
            f"<LeadCommission(id={self.id}, lead_id={self.lead_id}, user_id={self.user_id}, "
            f"field='{self.assignment_field}', amount={self.calculated_amount}, status='{self.status}')>"
        )

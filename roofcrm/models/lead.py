from typing import Optional

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from roofcrm.db.base_class import Base
from roofcrm.core.commission_types import AssignmentField

class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("company.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("location.id"), nullable=True, index=True)
    full_name = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False, default="new", index=True)

    # Role slots
    sales_rep_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    marketing_rep_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    sales_manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    production_manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    def get_assignee(self, field: AssignmentField) -> Optional[int]:
        if field is AssignmentField.SALES_REP:
            return self.sales_rep_id
        if field is AssignmentField.MARKETING_REP:
            return self.marketing_rep_id
        if field is AssignmentField.SALES_MANAGER:
            return self.sales_manager_id
        if field is AssignmentField.PRODUCTION_MANAGER:
            return self.production_manager_id
        raise ValueError(f"{field.value} is not a lead role slot")

    def set_assignee(self, field: AssignmentField, user_id: Optional[int]) -> None:
        if field is AssignmentField.SALES_REP:
            self.sales_rep_id = user_id
        elif field is AssignmentField.MARKETING_REP:
            self.marketing_rep_id = user_id
        elif field is AssignmentField.SALES_MANAGER:
            self.sales_manager_id = user_id
        elif field is AssignmentField.PRODUCTION_MANAGER:
            self.production_manager_id = user_id
        else:
            raise ValueError(f"{field.value} is not a lead role slot")

    def __repr__(self):
        return f"<Lead(id={self.id}, full_name='{self.full_name}', sales_rep_id={self.sales_rep_id})>"

from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, func
from roofcrm.db.base_class import Base

class CustomerInvoice(Base):
    __tablename__ = "customer_invoices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("company.id"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    invoice_number = Column(String(50), nullable=True)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0) # quote + change orders; the commission base
    status = Column(String(50), nullable=False, default="draft")
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<CustomerInvoice(id={self.id}, lead_id={self.lead_id}, total={self.total})>"

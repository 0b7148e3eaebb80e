from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from roofcrm.schemas.commission import RefreshResult


class CustomerInvoiceBase(BaseModel):
    invoice_number: Optional[str] = Field(default=None, max_length=50)
    subtotal: Decimal = Field(default=Decimal("0"), ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Field(..., ge=0)
    status: str = Field(default="draft", max_length=50)


class CustomerInvoiceCreate(CustomerInvoiceBase):
    pass


class CustomerInvoice(CustomerInvoiceBase):
    id: int
    company_id: int
    lead_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceWithCommissions(BaseModel):
    invoice: CustomerInvoice
    commissions: RefreshResult

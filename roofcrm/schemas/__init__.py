from .token import TokenData
from .user import UserBase, UserCreate, User
from .location import CommissionPlanCreate, TeamCreate, LocationUserCreate
from .lead import LeadBase, LeadCreate, LeadAssignment, Lead, LeadAssignmentResult
from .invoice import (
    CustomerInvoiceBase,
    CustomerInvoiceCreate,
    CustomerInvoice,
    InvoiceWithCommissions,
)
from .commission import (
    LeadCommissionBase,
    LeadCommissionCreate,
    LeadCommissionUpdate,
    LeadCommissionEdit,
    LeadCommission as LeadCommissionSchema, # Alias to avoid clash with the LeadCommission model
    CommissionNestedUser,
    CommissionSummary,
    CommissionPayment,
    CommissionCancel,
    CommissionResult,
    FanOutResult,
    RecalculateResult,
    RefreshResult,
)

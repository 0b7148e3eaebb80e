# Import every model so Base.metadata knows all tables before create_all()
from roofcrm.db.base_class import Base  # noqa: F401
from roofcrm.models.company import Company, Location  # noqa: F401
from roofcrm.models.user import User  # noqa: F401
from roofcrm.models.commission_plan import CommissionPlan  # noqa: F401
from roofcrm.models.location_user import LocationUser, Team  # noqa: F401
from roofcrm.models.lead import Lead  # noqa: F401
from roofcrm.models.invoice import CustomerInvoice  # noqa: F401
from roofcrm.models.lead_commission import LeadCommission  # noqa: F401

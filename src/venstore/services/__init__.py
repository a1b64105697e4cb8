from .rate_service import RateService
from .inventory_service import InventoryService
from .cart import Cart
from .sales_service import SalesService, SaleDraft
from .credit_service import CreditService
from .reporting_service import ReportingService, Period
from .assistant_service import AssistantService

__all__ = [
    "RateService",
    "InventoryService",
    "Cart",
    "SalesService",
    "SaleDraft",
    "CreditService",
    "ReportingService",
    "Period",
    "AssistantService",
]

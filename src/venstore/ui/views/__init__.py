from .sales_view import SalesView
from .products_view import ProductsView
from .credits_view import CreditsView
from .reports_view import ReportsView
from .rate_view import RateView
from .assistant_view import AssistantView

__all__ = ["SalesView", "ProductsView", "CreditsView", "ReportsView", "RateView", "AssistantView"]

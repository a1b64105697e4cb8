from .models import Currency, ProductCategory, PaymentMethod, Product, CartItem, Sale, Totals
from .errors import ValidationError, NotFoundError, InsufficientStockError, ConfigurationError

__all__ = [
    "Currency",
    "ProductCategory",
    "PaymentMethod",
    "Product",
    "CartItem",
    "Sale",
    "Totals",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "ConfigurationError",
]

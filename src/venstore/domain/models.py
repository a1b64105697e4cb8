from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Currency(str, Enum):
    USD = "USD"
    BSF = "BsF"


class ProductCategory(str, Enum):
    VIVERES = "Víveres"
    ASEO = "Aseo Personal"
    BEBIDAS = "Bebidas"
    CHARCUTERIA = "Charcutería"
    LACTEOS = "Lácteos"
    PAN = "Pan"
    LIMPIEZA = "Limpieza"
    GOLOSINAS = "Golosinas"
    GRANOS = "Granos"
    FARMACIA = "Farmacia"
    PAPELERIA = "Papelería"
    MISCELANEO = "Misceláneo"
    OTROS = "Otros"


class PaymentMethod(str, Enum):
    PAGO_MOVIL = "Pago Móvil"
    PUNTO_VENTA = "Punto de Venta"
    EFECTIVO_USD = "Efectivo USD (Divisa)"
    EFECTIVO_BSF = "Efectivo BsF"
    CREDITO = "Crédito"

    @property
    def requires_customer(self) -> bool:
        return self is PaymentMethod.CREDITO

    @property
    def requires_reference(self) -> bool:
        return self is PaymentMethod.PAGO_MOVIL


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: ProductCategory
    price: float
    currency: Currency
    unit: str = "Unidad"
    units_per_case: int = 1
    stock: float = 0.0
    barcode: Optional[str] = None
    cost: Optional[float] = None
    profit_margin: Optional[float] = None


@dataclass(frozen=True)
class CartItem:
    product_id: Optional[str]
    name: str
    quantity: float
    price: float
    currency: Currency
    is_manual: bool = False

    @property
    def amount(self) -> float:
        """Line amount in the item's own currency."""
        return self.price * self.quantity


@dataclass(frozen=True)
class Sale:
    id: str
    timestamp: str
    items: tuple[CartItem, ...]
    total_usd: float
    total_bsf: float
    rate_at_sale: float
    payment_method: PaymentMethod
    customer_name: Optional[str] = None
    payment_reference: Optional[str] = None

    @property
    def is_open_debt(self) -> bool:
        return self.payment_method is PaymentMethod.CREDITO


@dataclass(frozen=True)
class Totals:
    usd: float
    bsf: float

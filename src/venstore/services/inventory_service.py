from __future__ import annotations

import logging
import math
import uuid
from dataclasses import replace
from typing import Iterable, Optional

from venstore.domain.errors import InsufficientStockError, ValidationError, NotFoundError
from venstore.domain.models import CartItem, Currency, Product, ProductCategory

log = logging.getLogger(__name__)


def price_from_margin(cost: float, margin: float) -> Optional[float]:
    """Price suggested by the entry form when both cost and margin are set."""
    if cost > 0 and margin > 0:
        return round(cost * (1 + margin / 100), 2)
    return None


def catalog_quantities(items: Iterable[CartItem]) -> dict[str, float]:
    """Quantity per product id over the catalog-backed lines of a cart or sale."""
    out: dict[str, float] = {}
    for it in items:
        if it.is_manual or not it.product_id:
            continue
        out[it.product_id] = out.get(it.product_id, 0.0) + float(it.quantity)
    return out


def _number(value: object, field: str) -> float:
    try:
        v = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError(f"El campo {field} debe ser un número.")
    if math.isnan(v) or math.isinf(v):
        raise ValidationError(f"El campo {field} debe ser un número.")
    return v


class InventoryService:
    def __init__(self, repo, strict_stock: bool = False):
        self.repo = repo
        self.strict_stock = strict_stock

    # ---------- read side ----------
    def list_products(self) -> list[Product]:
        return sorted(self.repo.list_products(), key=lambda p: p.name.casefold())

    def search(self, text: str = "", category: ProductCategory | None = None) -> list[Product]:
        needle = (text or "").strip()
        out = []
        for p in self.list_products():
            if category is not None and p.category is not category:
                continue
            if needle and needle.casefold() not in p.name.casefold() and not (p.barcode and needle in p.barcode):
                continue
            out.append(p)
        return out

    def get_product(self, product_id: str) -> Product:
        p = self.repo.get_product(product_id)
        if not p:
            raise NotFoundError("Producto no encontrado.")
        return p

    def find_by_barcode(self, barcode: str) -> Product:
        code = (barcode or "").strip()
        p = self.repo.find_product_by_barcode(code) if code else None
        if not p:
            raise NotFoundError(f"No hay ningún producto con el código {code!r} en el inventario.")
        return p

    def plan_reservations(self, items: Iterable[CartItem]) -> dict[str, float]:
        """Check every catalog line against live stock and return the reservation plan.

        Nothing is written here. The sale transaction re-checks and applies
        the whole plan, or none of it.
        """
        plan = catalog_quantities(items)
        for pid, qty in plan.items():
            p = self.get_product(pid)
            if qty > p.stock:
                raise InsufficientStockError(f"Stock insuficiente para {p.name}. Disponible: {p.stock}")
        return plan

    # ---------- write side ----------
    def create_product(
        self,
        name: str,
        price: object,
        currency: Currency = Currency.USD,
        category: ProductCategory = ProductCategory.OTROS,
        unit: str = "Unidad",
        units_per_case: int = 1,
        stock: float = 0,
        barcode: str | None = None,
        cost: float | None = None,
        profit_margin: float | None = None,
    ) -> Product:
        product = Product(
            id=uuid.uuid4().hex,
            name=name,
            category=category,
            price=price,  # type: ignore[arg-type]
            currency=currency,
            unit=unit,
            units_per_case=units_per_case,
            stock=stock,
            barcode=barcode,
            cost=cost,
            profit_margin=profit_margin,
        )
        return self.upsert(product)

    def upsert(self, product: Product) -> Product:
        """Insert a new product or replace every field of an existing one."""
        clean = self._validated(product)
        created = self.repo.upsert_product(clean)
        log.info("product_saved id=%s name=%s created=%s", clean.id, clean.name, created)
        return clean

    def _validated(self, product: Product) -> Product:
        name = (product.name or "").strip()
        if not name:
            raise ValidationError("Nombre y precio son obligatorios.")
        if product.price is None or product.price == "":
            raise ValidationError("Nombre y precio son obligatorios.")
        price = _number(product.price, "Precio")
        if price <= 0:
            raise ValidationError("El precio debe ser mayor que 0.")

        try:
            units_per_case = int(product.units_per_case if product.units_per_case not in (None, "") else 1)
        except (TypeError, ValueError):
            raise ValidationError("Las unidades por caja deben ser un número entero.")
        if units_per_case < 1:
            raise ValidationError("Las unidades por caja deben ser al menos 1.")

        cost = _number(product.cost, "Costo") if product.cost not in (None, "") else None
        margin = _number(product.profit_margin, "Margen") if product.profit_margin not in (None, "") else None
        if cost is not None and cost < 0:
            raise ValidationError("El costo no puede ser negativo.")

        try:
            category = ProductCategory(product.category)
            currency = Currency(product.currency)
        except ValueError as e:
            raise ValidationError(f"Categoría o moneda inválida: {e}") from e

        return replace(
            product,
            name=name,
            category=category,
            price=price,
            currency=currency,
            unit=(product.unit or "").strip() or "Unidad",
            units_per_case=units_per_case,
            stock=_number(product.stock or 0, "Stock"),
            barcode=(product.barcode or "").strip() or None,
            cost=cost,
            profit_margin=margin,
        )

    def adjust_stock(self, product_id: str, delta: object) -> float:
        """Quick stock entry; negative deltas subtract.

        The legacy store lets manual adjustments drive stock below zero.
        With ``strict_stock`` enabled such results are rejected instead.
        """
        d = _number(delta, "Cantidad")
        if d == 0:
            return self.get_product(product_id).stock
        new_stock = self.repo.adjust_product_stock(product_id, d, allow_negative=not self.strict_stock)
        if new_stock is None:
            raise NotFoundError("Producto no encontrado.")
        log.info("stock_adjusted product_id=%s delta=%s stock_after=%s", product_id, d, new_stock)
        return new_stock

    def remove(self, product_id: str) -> None:
        removed = self.repo.delete_product(product_id)
        if not removed:
            raise NotFoundError("Producto no encontrado.")
        log.info("product_removed id=%s", product_id)

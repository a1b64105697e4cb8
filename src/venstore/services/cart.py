from __future__ import annotations

import math
from dataclasses import replace
from typing import Callable, Optional

from venstore.domain.errors import InsufficientStockError, ValidationError
from venstore.domain.models import CartItem, Currency, Totals
from venstore.domain.money import totals_for


def _positive_qty(quantity: object) -> float:
    try:
        qty = float(quantity)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError("La cantidad debe ser un número.")
    if math.isnan(qty) or qty <= 0:
        raise ValidationError("La cantidad debe ser > 0.")
    return qty


class Cart:
    """In-progress sale. Nothing here touches stock until the sale is committed."""

    def __init__(self, inventory_service, rate_service):
        self.inventory = inventory_service
        self.rates = rate_service
        self._lines: list[CartItem] = []

    @property
    def lines(self) -> tuple[CartItem, ...]:
        return tuple(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def quantity_in_cart(self, product_id: str) -> float:
        return sum(it.quantity for it in self._lines if not it.is_manual and it.product_id == product_id)

    def add_catalog_item(self, product_id: str, quantity: object = 1) -> CartItem:
        qty = _positive_qty(quantity)
        product = self.inventory.get_product(product_id)

        if self.quantity_in_cart(product.id) + qty > product.stock:
            raise InsufficientStockError(f"Stock insuficiente para {product.name}. Disponible: {product.stock}")

        for idx, it in enumerate(self._lines):
            if not it.is_manual and it.product_id == product.id:
                merged = replace(it, quantity=it.quantity + qty)
                self._lines[idx] = merged
                return merged

        line = CartItem(
            product_id=product.id,
            name=product.name,
            quantity=qty,
            price=product.price,
            currency=product.currency,
            is_manual=False,
        )
        self._lines.append(line)
        return line

    def add_by_barcode(self, barcode: str, quantity: object = 1) -> CartItem:
        product = self.inventory.find_by_barcode(barcode)
        return self.add_catalog_item(product.id, quantity)

    def add_manual_item(self, name: str, price: object, currency: Currency, quantity: object = 1) -> CartItem:
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValidationError("El producto manual necesita un nombre.")
        if price is None or price == "":
            raise ValidationError("El producto manual necesita un precio.")
        try:
            unit_price = float(price)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ValidationError("El precio debe ser un número.")
        if math.isnan(unit_price) or math.isinf(unit_price) or unit_price < 0:
            raise ValidationError("El precio debe ser >= 0.")

        line = CartItem(
            product_id=None,
            name=clean_name,
            quantity=_positive_qty(quantity),
            price=unit_price,
            currency=Currency(currency),
            is_manual=True,
        )
        self._lines.append(line)
        return line

    def remove_line(self, index: int) -> CartItem:
        if not 0 <= index < len(self._lines):
            raise ValidationError(f"No hay una línea del carrito en la posición {index}.")
        return self._lines.pop(index)

    def totals(self) -> Totals:
        # live: follows the current rate until the sale is committed
        return totals_for(self._lines, self.rates.get_rate())

    def clear(self, confirm: Optional[Callable[[str], bool]] = None) -> bool:
        if self._lines and confirm is not None and not confirm("¿Vaciar la venta actual?"):
            return False
        self._lines.clear()
        return True

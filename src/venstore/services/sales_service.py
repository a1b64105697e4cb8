from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from venstore.domain.errors import NotFoundError, ValidationError
from venstore.domain.models import CartItem, PaymentMethod, Sale, Totals
from venstore.domain.money import totals_for
from venstore.services.inventory_service import catalog_quantities

log = logging.getLogger("venstore.sales")

Confirm = Callable[[str], bool]


def _declined(confirm: Optional[Confirm], message: str) -> bool:
    return confirm is not None and not confirm(message)


def payment_fields(
    method: PaymentMethod | str,
    customer_name: Optional[str],
    payment_reference: Optional[str],
    *,
    keep_customer: bool = False,
) -> tuple[PaymentMethod, Optional[str], Optional[str]]:
    """Validate the payment-specific fields and drop the ones the method does not use.

    Crédito needs a customer name and Pago Móvil needs a reference.
    ``keep_customer`` preserves the name on sales that stop being credit.
    """
    try:
        pm = PaymentMethod(method)
    except ValueError:
        raise ValidationError(f"Método de pago desconocido: {method}")

    customer = (customer_name or "").strip() or None
    reference = (payment_reference or "").strip() or None

    if pm.requires_customer and not customer:
        raise ValidationError("El nombre del cliente es obligatorio para ventas a crédito.")
    if pm.requires_reference and not reference:
        raise ValidationError(f"Se requiere una referencia de pago para {pm.value}.")

    if not (pm.requires_customer or keep_customer):
        customer = None
    if not pm.requires_reference:
        reference = None
    return pm, customer, reference


class SaleDraft:
    """Editable copy of a committed sale.

    Lines can only be removed. Totals are always recomputed at the rate the
    sale was made at.
    """

    def __init__(self, sale: Sale):
        self.original = sale
        self.items: list[CartItem] = list(sale.items)
        self.removed: list[CartItem] = []
        self.payment_method: PaymentMethod | str = sale.payment_method
        self.customer_name: Optional[str] = sale.customer_name
        self.payment_reference: Optional[str] = sale.payment_reference

    @property
    def sale_id(self) -> str:
        return self.original.id

    def remove_item(self, index: int) -> CartItem:
        if not 0 <= index < len(self.items):
            raise ValidationError(f"No hay una línea de la venta en la posición {index}.")
        item = self.items.pop(index)
        self.removed.append(item)
        return item

    def totals(self) -> Totals:
        return totals_for(self.items, self.original.rate_at_sale)


class SalesService:
    def __init__(self, repo, inventory_service, rate_service, clock: Callable[[], datetime] = datetime.now):
        self.repo = repo
        self.inventory = inventory_service
        self.rates = rate_service
        self.clock = clock

    def _now_iso(self) -> str:
        return self.clock().replace(microsecond=0).isoformat(sep=" ")

    # ---------- commit ----------
    def commit(
        self,
        cart,
        payment_method: PaymentMethod | str,
        customer_name: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Sale:
        items = tuple(cart.lines)
        if not items:
            raise ValidationError("El carrito está vacío.")

        method, customer, reference = payment_fields(payment_method, customer_name, payment_reference)
        plan = self.inventory.plan_reservations(items)

        rate = self.rates.get_rate()
        totals = totals_for(items, rate)
        sale = Sale(
            id=uuid.uuid4().hex,
            timestamp=self._now_iso(),
            items=items,
            total_usd=totals.usd,
            total_bsf=totals.bsf,
            rate_at_sale=rate,
            payment_method=method,
            customer_name=customer,
            payment_reference=reference,
        )
        self.repo.create_sale(sale, plan)
        cart.clear()
        log.info(
            "sale_committed sale_id=%s items=%s usd=%.2f bsf=%.2f rate=%.4f method=%s",
            sale.id, len(items), sale.total_usd, sale.total_bsf, rate, method.name,
        )
        return sale

    # ---------- undo / retract ----------
    def undo_last(self, confirm: Optional[Confirm] = None) -> Optional[Sale]:
        sale = self.repo.last_sale()
        if sale is None:
            return None
        if _declined(confirm, "¿Deshacer la última venta? Sus productos vuelven al inventario."):
            return None
        restored = self.repo.delete_sale(sale.id, catalog_quantities(sale.items))
        log.info("sale_undone sale_id=%s restored_products=%s", sale.id, restored)
        return sale

    def retract(self, sale_id: str, confirm: Optional[Confirm] = None) -> Optional[Sale]:
        sale = self.get_sale(sale_id)
        if _declined(confirm, "¿Eliminar esta venta y devolver su stock al inventario?"):
            return None
        restored = self.repo.delete_sale(sale.id, catalog_quantities(sale.items))
        log.info("sale_retracted sale_id=%s restored_products=%s", sale.id, restored)
        return sale

    # ---------- amend ----------
    def draft(self, sale_id: str) -> SaleDraft:
        return SaleDraft(self.get_sale(sale_id))

    def save_draft(self, draft: SaleDraft, confirm: Optional[Confirm] = None) -> Optional[Sale]:
        method, customer, reference = payment_fields(
            draft.payment_method, draft.customer_name, draft.payment_reference, keep_customer=True
        )
        if _declined(confirm, "¿Guardar los cambios de esta venta?"):
            return None

        totals = draft.totals()
        updated = replace(
            draft.original,
            items=tuple(draft.items),
            total_usd=totals.usd,
            total_bsf=totals.bsf,
            payment_method=method,
            customer_name=customer,
            payment_reference=reference,
        )
        restored = self.repo.replace_sale(updated, catalog_quantities(draft.removed), expected=draft.original)
        log.info(
            "sale_amended sale_id=%s removed_lines=%s restored_products=%s usd=%.2f method=%s",
            updated.id, len(draft.removed), restored, updated.total_usd, method.name,
        )
        return updated

    def amend(self, sale_id: str, mutator: Callable[[SaleDraft], None], confirm: Optional[Confirm] = None) -> Optional[Sale]:
        draft = self.draft(sale_id)
        mutator(draft)
        return self.save_draft(draft, confirm=confirm)

    def replace_payment(
        self,
        sale: Sale,
        method: PaymentMethod | str,
        customer_name: Optional[str],
        payment_reference: Optional[str],
    ) -> Sale:
        """Overwrite only the payment fields; items, totals and rate stay as they are."""
        pm, customer, reference = payment_fields(method, customer_name, payment_reference, keep_customer=True)
        updated = replace(sale, payment_method=pm, customer_name=customer, payment_reference=reference)
        self.repo.replace_sale(updated, expected=sale)
        return updated

    # ---------- read side ----------
    def get_sale(self, sale_id: str) -> Sale:
        sale = self.repo.get_sale(sale_id)
        if sale is None:
            raise NotFoundError("Venta no encontrada.")
        return sale

    def list_sales(self) -> list[Sale]:
        return self.repo.list_sales()

    def last_sale(self) -> Optional[Sale]:
        return self.repo.last_sale()

    def recent_sales(self, limit: int = 50) -> list[Sale]:
        return self.repo.recent_sales(limit)

    def list_sales_between(self, start_iso: str, end_iso: str) -> list[Sale]:
        return self.repo.list_sales_between(start_iso, end_iso)

    def list_sales_by_method(self, method: PaymentMethod) -> list[Sale]:
        return self.repo.list_sales_by_method(method)

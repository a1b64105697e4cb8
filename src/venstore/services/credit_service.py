from __future__ import annotations

import logging
from typing import Optional

from venstore.domain.errors import ValidationError
from venstore.domain.models import PaymentMethod, Sale

log = logging.getLogger("venstore.credits")


class CreditService:
    """Open debts are credit sales in the ledger; there is no separate table."""

    def __init__(self, sales_service, strict: bool = False):
        self.sales = sales_service
        self.strict = strict

    def open_debts(self, search: Optional[str] = None) -> list[Sale]:
        debts = self.sales.list_sales_by_method(PaymentMethod.CREDITO)
        needle = (search or "").strip().casefold()
        if needle:
            debts = [s for s in debts if needle in (s.customer_name or "").casefold()]
        return debts

    def total_open_usd(self) -> float:
        return sum(s.total_usd for s in self.open_debts())

    def total_open_bsf(self) -> float:
        return sum(s.total_bsf for s in self.open_debts())

    def debts_by_customer(self) -> list[tuple[str, int, float, float]]:
        """(customer, open sales, usd, bsf), largest USD balance first."""
        grouped: dict[str, list[float]] = {}
        for s in self.open_debts():
            row = grouped.setdefault(s.customer_name or "", [0, 0.0, 0.0])
            row[0] += 1
            row[1] += s.total_usd
            row[2] += s.total_bsf
        out = [(name, int(v[0]), v[1], v[2]) for name, v in grouped.items()]
        out.sort(key=lambda r: (-r[2], r[0].casefold()))
        return out

    def settle(self, sale_id: str, new_method: PaymentMethod | str, reference: Optional[str] = None) -> Sale:
        try:
            method = PaymentMethod(new_method)
        except ValueError:
            raise ValidationError(f"Método de pago desconocido: {new_method}")
        if method is PaymentMethod.CREDITO:
            raise ValidationError("La deuda debe saldarse con un método de pago distinto de Crédito.")

        sale = self.sales.get_sale(sale_id)
        if not sale.is_open_debt:
            if self.strict:
                raise ValidationError("Esta venta no es una deuda pendiente.")
            return sale

        settled = self.sales.replace_payment(sale, method, sale.customer_name, reference)
        log.info(
            "debt_settled sale_id=%s customer=%s usd=%.2f method=%s",
            settled.id, settled.customer_name, settled.total_usd, method.name,
        )
        return settled

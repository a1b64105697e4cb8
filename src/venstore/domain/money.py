from __future__ import annotations

import math
from typing import Iterable

from venstore.domain.errors import ValidationError
from venstore.domain.models import CartItem, Currency, Totals


def validate_rate(value: object) -> float:
    """Return ``value`` as a usable BsF-per-USD rate or raise ValidationError.

    Rates are checked where they are set, so conversions never see a
    zero, negative or non-finite rate.
    """
    try:
        rate = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError(f"La tasa de cambio debe ser un número. Recibido: {value!r}")
    if math.isnan(rate) or math.isinf(rate):
        raise ValidationError(f"La tasa de cambio debe ser finita. Recibido: {rate}")
    if rate <= 0:
        raise ValidationError(f"La tasa de cambio debe ser mayor que 0. Recibido: {rate}")
    return rate


def to_other(amount: float, currency: Currency, rate: float) -> float:
    if currency is Currency.USD:
        return amount * rate
    return amount / rate


def to_usd(amount: float, currency: Currency, rate: float) -> float:
    if currency is Currency.USD:
        return amount
    return to_other(amount, currency, rate)


def to_bsf(amount: float, currency: Currency, rate: float) -> float:
    if currency is Currency.BSF:
        return amount
    return to_other(amount, currency, rate)


def line_totals(item: CartItem, rate: float) -> Totals:
    return Totals(usd=to_usd(item.amount, item.currency, rate), bsf=to_bsf(item.amount, item.currency, rate))


def totals_for(items: Iterable[CartItem], rate: float) -> Totals:
    usd = 0.0
    bsf = 0.0
    for it in items:
        line = line_totals(it, rate)
        usd += line.usd
        bsf += line.bsf
    return Totals(usd=usd, bsf=bsf)

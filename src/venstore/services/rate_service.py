from __future__ import annotations

import logging
from datetime import datetime

from venstore.config import DEFAULT_RATE
from venstore.domain.errors import ConfigurationError, ValidationError
from venstore.domain.models import Currency
from venstore.domain.money import to_other, validate_rate

log = logging.getLogger("venstore.fx")

USD_TO_BSF = "USD_TO_BSF"
BSF_TO_USD = "BSF_TO_USD"
QUICK_AMOUNTS = (1, 5, 10, 20, 50, 100)


class RateService:
    def __init__(self, repo, default_rate: float = DEFAULT_RATE):
        self.repo = repo
        try:
            self.default_rate = validate_rate(default_rate)
        except ValidationError as e:
            raise ConfigurationError(f"Tasa de cambio por defecto inválida. {e}") from e

    def get_rate(self) -> float:
        saved = self.repo.get_rate()
        if saved is None:
            return self.default_rate
        return float(saved)

    def set_rate(self, value: object) -> float:
        rate = validate_rate(value)
        previous = self.repo.get_rate()
        self.repo.set_rate(rate, datetime.now().replace(microsecond=0).isoformat(sep=" "))
        log.info("rate_updated rate=%.4f previous=%s", rate, previous)
        return rate

    def convert(self, amount: float, direction: str = USD_TO_BSF) -> float:
        """Quick calculator: convert ``amount`` at the live rate."""
        if direction == USD_TO_BSF:
            return to_other(float(amount), Currency.USD, self.get_rate())
        if direction == BSF_TO_USD:
            return to_other(float(amount), Currency.BSF, self.get_rate())
        raise ValidationError(f"Dirección de conversión desconocida: {direction}")

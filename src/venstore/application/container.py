from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from venstore.config import StoreSettings
from venstore.repositories.sqlite_repo import SqliteRepository
from venstore.services.assistant_service import AssistantService
from venstore.services.cart import Cart
from venstore.services.credit_service import CreditService
from venstore.services.inventory_service import InventoryService
from venstore.services.rate_service import RateService
from venstore.services.reporting_service import ReportingService
from venstore.services.sales_service import SalesService


@dataclass(frozen=True)
class AppContainer:
    repo: SqliteRepository
    settings: StoreSettings
    rates: RateService
    inventory: InventoryService
    cart: Cart
    sales: SalesService
    credits: CreditService
    reporting: ReportingService
    assistant: AssistantService


def build_container(db_path: Path | str, settings: Optional[StoreSettings] = None) -> AppContainer:
    settings = settings or StoreSettings()

    repo = SqliteRepository(db_path)
    repo.init_db()

    rates = RateService(repo, default_rate=settings.default_rate)
    inventory = InventoryService(repo, strict_stock=settings.strict_stock)
    cart = Cart(inventory, rates)
    sales = SalesService(repo, inventory, rates)
    credits = CreditService(sales, strict=settings.strict_settle)
    reporting = ReportingService(sales, inventory, rates)
    assistant = AssistantService(
        sales, inventory, rates,
        api_key=settings.assistant_api_key,
        model=settings.assistant_model,
    )

    return AppContainer(
        repo=repo,
        settings=settings,
        rates=rates,
        inventory=inventory,
        cart=cart,
        sales=sales,
        credits=credits,
        reporting=reporting,
        assistant=assistant,
    )

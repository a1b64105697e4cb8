from datetime import datetime
from pathlib import Path

import pytest
from openpyxl import load_workbook

from venstore.domain.models import Currency, PaymentMethod
from venstore.repositories.sqlite_repo import SqliteRepository
from venstore.services.cart import Cart
from venstore.services.inventory_service import InventoryService
from venstore.services.rate_service import RateService
from venstore.services.reporting_service import Period, ReportingService, add_months, period_start
from venstore.services.sales_service import SalesService

# Wednesday
NOW = datetime(2026, 10, 14, 15, 0, 0)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _setup(tmp_path: Path):
    repo = SqliteRepository(tmp_path / "reports.db")
    repo.init_db()
    rates = RateService(repo, default_rate=40.0)
    inventory = InventoryService(repo)
    clock = Clock(NOW)
    sales = SalesService(repo, inventory, rates, clock=clock)
    reporting = ReportingService(sales, inventory, rates, clock=clock)
    return repo, rates, inventory, sales, reporting, clock


def _sell(sales, rates, inventory, clock, when: datetime, usd: float, method=PaymentMethod.EFECTIVO_USD, **kw):
    clock.now = when
    cart = Cart(inventory, rates)
    cart.add_manual_item("Item", usd, Currency.USD)
    sale = sales.commit(cart, method, **kw)
    clock.now = NOW
    return sale


def _populate(tmp_path: Path):
    repo, rates, inventory, sales, reporting, clock = _setup(tmp_path)
    _sell(sales, rates, inventory, clock, datetime(2026, 10, 14, 10, 0), 10.0)
    _sell(sales, rates, inventory, clock, datetime(2026, 10, 12, 9, 0), 20.0, PaymentMethod.PUNTO_VENTA)
    _sell(sales, rates, inventory, clock, datetime(2026, 10, 3, 18, 30), 30.0, PaymentMethod.CREDITO, customer_name="Ana")
    _sell(sales, rates, inventory, clock, datetime(2026, 9, 30, 23, 59), 40.0)
    return repo, rates, inventory, sales, reporting, clock


def test_period_windows():
    assert period_start(Period.DAILY, NOW) == datetime(2026, 10, 14)
    assert period_start(Period.WEEKLY, NOW) == datetime(2026, 10, 12)
    assert period_start(Period.MONTHLY, NOW) == datetime(2026, 10, 1)
    assert add_months(datetime(2026, 1, 1), -1) == datetime(2025, 12, 1)
    assert add_months(datetime(2026, 11, 1), 2) == datetime(2027, 1, 1)


def test_summary_per_period(tmp_path: Path):
    *_rest, reporting, _clock = _populate(tmp_path)

    daily = reporting.summary(Period.DAILY)
    weekly = reporting.summary("WEEKLY")
    monthly = reporting.summary(Period.MONTHLY)

    assert (daily.sales_count, daily.total_usd) == (1, pytest.approx(10.0))
    assert (weekly.sales_count, weekly.total_usd) == (2, pytest.approx(30.0))
    assert (monthly.sales_count, monthly.total_usd) == (3, pytest.approx(60.0))
    assert monthly.total_bsf == pytest.approx(2400.0)


def test_by_payment_method(tmp_path: Path):
    *_rest, reporting, _clock = _populate(tmp_path)

    by_method = reporting.by_payment_method(Period.MONTHLY)

    assert set(by_method) == {PaymentMethod.EFECTIVO_USD, PaymentMethod.PUNTO_VENTA, PaymentMethod.CREDITO}
    assert by_method[PaymentMethod.CREDITO].count == 1
    assert by_method[PaymentMethod.CREDITO].usd == pytest.approx(30.0)
    assert by_method[PaymentMethod.EFECTIVO_USD].bsf == pytest.approx(400.0)


def test_chart_series_shapes(tmp_path: Path):
    *_rest, reporting, _clock = _populate(tmp_path)

    daily = reporting.chart_series(Period.DAILY)
    weekly = reporting.chart_series(Period.WEEKLY)
    monthly = reporting.chart_series(Period.MONTHLY)

    assert len(daily) == 7 and len(weekly) == 4 and len(monthly) == 6
    assert daily[-1][1] == pytest.approx(10.0)
    assert daily[-3][1] == pytest.approx(20.0)
    assert weekly[-1][1] == pytest.approx(30.0)
    assert [label for label, _ in monthly] == ["2026-05", "2026-06", "2026-07", "2026-08", "2026-09", "2026-10"]
    assert monthly[-1][1] == pytest.approx(60.0)
    assert monthly[-2][1] == pytest.approx(40.0)


def test_sales_report_excel(tmp_path: Path):
    *_rest, reporting, _clock = _populate(tmp_path)
    out = tmp_path / "ventas.xlsx"

    reporting.export_sales_report_excel(str(out), Period.WEEKLY)

    wb = load_workbook(out)
    assert wb.sheetnames == ["Summary", "Sales", "By method"]
    assert wb["Summary"]["B6"].value == 2
    assert wb["Summary"]["B7"].value == pytest.approx(30.0)

    rows = list(wb["Sales"].iter_rows(min_row=2, values_only=True))
    assert len(rows) == 2
    assert rows[0][0] == "2026-10-14 10:00:00"
    assert rows[0][7] == "1 x Item"


def test_sales_report_excel_without_sales(tmp_path: Path):
    *_rest, reporting, _clock = _setup(tmp_path)
    out = tmp_path / "empty.xlsx"

    reporting.export_sales_report_excel(str(out), Period.DAILY)

    wb = load_workbook(out)
    assert wb["Sales"].max_row == 1
    assert wb["Summary"]["B6"].value == 0


def test_inventory_excel(tmp_path: Path):
    _repo, rates, inventory, _sales, reporting, _clock = _setup(tmp_path)
    inventory.create_product(name="Arroz", price=80.0, currency=Currency.BSF, stock=12, barcode="7590")
    inventory.create_product(name="Aceite", price=3.0, stock=4)
    out = tmp_path / "inventario.xlsx"

    reporting.export_inventory_excel(str(out))

    ws = load_workbook(out)["Inventory"]
    rows = list(ws.iter_rows(min_row=2, max_row=3, values_only=True))
    assert [r[0] for r in rows] == ["Aceite", "Arroz"]
    assert rows[0][4] == pytest.approx(120.0)
    assert rows[1][3] == "BsF"
    assert rows[1][4] == pytest.approx(2.0)
    assert rows[1][8] == "7590"

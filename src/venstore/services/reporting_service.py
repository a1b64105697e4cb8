from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from venstore.domain.models import Currency, PaymentMethod, Sale
from venstore.domain.money import to_other


class Period(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


PERIOD_LABELS = {
    Period.DAILY: "Today",
    Period.WEEKLY: "This week",
    Period.MONTHLY: "This month",
}


@dataclass(frozen=True)
class ReportSummary:
    period: Period
    start: datetime
    sales_count: int
    total_usd: float
    total_bsf: float


@dataclass(frozen=True)
class MethodTotals:
    count: int
    usd: float
    bsf: float


def _iso(d: datetime) -> str:
    return d.replace(microsecond=0).isoformat(sep=" ")


def start_of_day(d: datetime) -> datetime:
    return d.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(d: datetime) -> datetime:
    # weeks start on Monday
    return start_of_day(d) - timedelta(days=d.weekday())


def start_of_month(d: datetime) -> datetime:
    return start_of_day(d).replace(day=1)


def add_months(d: datetime, months: int) -> datetime:
    idx = d.year * 12 + (d.month - 1) + months
    return d.replace(year=idx // 12, month=idx % 12 + 1, day=1)


def period_start(period: Period, now: datetime) -> datetime:
    if period is Period.DAILY:
        return start_of_day(now)
    if period is Period.WEEKLY:
        return start_of_week(now)
    return start_of_month(now)


def items_label(sale: Sale) -> str:
    return ", ".join(f"{it.quantity:g} x {it.name}" for it in sale.items)


class ReportingService:
    def __init__(self, sales_service, inventory_service, rate_service, clock: Callable[[], datetime] = datetime.now):
        self.sales = sales_service
        self.inventory = inventory_service
        self.rates = rate_service
        self.clock = clock

    def sales_in_period(self, period: Period) -> list[Sale]:
        now = self.clock()
        start = period_start(Period(period), now)
        # sales stamped in the current second are still "now"
        return self.sales.list_sales_between(_iso(start), _iso(now + timedelta(seconds=1)))

    def summary(self, period: Period) -> ReportSummary:
        period = Period(period)
        rows = self.sales_in_period(period)
        return ReportSummary(
            period=period,
            start=period_start(period, self.clock()),
            sales_count=len(rows),
            total_usd=sum(s.total_usd for s in rows),
            total_bsf=sum(s.total_bsf for s in rows),
        )

    def by_payment_method(self, period: Period) -> dict[PaymentMethod, MethodTotals]:
        acc: dict[PaymentMethod, list[float]] = {}
        for s in self.sales_in_period(period):
            row = acc.setdefault(s.payment_method, [0, 0.0, 0.0])
            row[0] += 1
            row[1] += s.total_usd
            row[2] += s.total_bsf
        return {m: MethodTotals(count=int(v[0]), usd=v[1], bsf=v[2]) for m, v in acc.items()}

    def chart_series(self, period: Period) -> list[tuple[str, float]]:
        """USD totals per bucket: 7 days, 4 weeks or 6 months back from now."""
        period = Period(period)
        now = self.clock()
        buckets: list[tuple[str, datetime, datetime]] = []
        if period is Period.DAILY:
            today = start_of_day(now)
            for i in range(6, -1, -1):
                d = today - timedelta(days=i)
                buckets.append((d.strftime("%a %d"), d, d + timedelta(days=1)))
        elif period is Period.WEEKLY:
            week = start_of_week(now)
            for i in range(3, -1, -1):
                d = week - timedelta(weeks=i)
                buckets.append((f"Wk {d.strftime('%d/%m')}", d, d + timedelta(weeks=1)))
        else:
            month = start_of_month(now)
            for i in range(5, -1, -1):
                d = add_months(month, -i)
                buckets.append((d.strftime("%Y-%m"), d, add_months(d, 1)))

        out: list[tuple[str, float]] = []
        for label, start, end in buckets:
            rows = self.sales.list_sales_between(_iso(start), _iso(end))
            out.append((label, sum(s.total_usd for s in rows)))
        return out

    # ---------- Excel exports ----------
    def export_sales_report_excel(self, path: str, period: Period) -> None:
        period = Period(period)
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        summary = self.summary(period)
        rows = self.sales_in_period(period)
        methods = self.by_payment_method(period)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Sales report"
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Period"
        ws["B3"] = f"{PERIOD_LABELS[period]} (since {_iso(summary.start)})"
        ws["A4"] = "Issued"
        ws["B4"] = _iso(self.clock())

        summary_rows = [
            ("Sales count", summary.sales_count, "int"),
            ("Total USD", summary.total_usd, "money"),
            ("Total BsF", summary.total_bsf, "money"),
        ]
        for i, (label, val, kind) in enumerate(summary_rows):
            r = 6 + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if kind == "money":
                money(ws[f"B{r}"])
        set_widths(ws, {"A": 24, "B": 40})

        # -------- 2) Sales --------
        ws2 = wb.create_sheet("Sales")
        ws2.append(["Datetime", "Method", "Customer", "Reference", "Rate", "Total USD", "Total BsF", "Items"])
        bold_row(ws2, 1)
        for out_row, s in enumerate(rows, start=2):
            ws2.append([
                s.timestamp, s.payment_method.value, s.customer_name or "", s.payment_reference or "",
                float(s.rate_at_sale), float(s.total_usd), float(s.total_bsf), items_label(s),
            ])
            for col in ("E", "F", "G"):
                money(ws2[f"{col}{out_row}"])
        ws2.freeze_panes = "A2"
        set_widths(ws2, {"A": 20, "B": 22, "C": 22, "D": 14, "E": 10, "F": 14, "G": 16, "H": 60})
        if ws2.max_row >= 2:
            add_table(ws2, "SalesDetail", 1, 1, ws2.max_row, 8)

        # -------- 3) By payment method --------
        ws3 = wb.create_sheet("By method")
        ws3.append(["Method", "Sales", "Total USD", "Total BsF"])
        bold_row(ws3, 1)
        for out_row, (m, t) in enumerate(sorted(methods.items(), key=lambda kv: kv[0].value), start=2):
            ws3.append([m.value, t.count, t.usd, t.bsf])
            money(ws3[f"C{out_row}"])
            money(ws3[f"D{out_row}"])
        set_widths(ws3, {"A": 24, "B": 8, "C": 14, "D": 16})

        wb.save(path)

    def export_inventory_excel(self, path: str) -> None:
        rate = self.rates.get_rate()
        products = self.inventory.list_products()

        wb = Workbook()
        ws = wb.active
        ws.title = "Inventory"
        ws.append(["Product", "Category", "Price", "Currency", "Price (other)", "Stock", "Unit", "Units/case", "Barcode"])
        for c in ws[1]:
            c.font = Font(bold=True)

        for out_row, p in enumerate(products, start=2):
            other = to_other(p.price, p.currency, rate)
            ws.append([
                p.name, p.category.value, float(p.price), p.currency.value, float(other),
                float(p.stock), p.unit, int(p.units_per_case), p.barcode or "",
            ])
            ws[f"C{out_row}"].number_format = "#,##0.00"
            ws[f"E{out_row}"].number_format = "#,##0.00"

        ws.freeze_panes = "A2"
        for col, w in {"A": 34, "B": 18, "C": 12, "D": 10, "E": 14, "F": 10, "G": 10, "H": 10, "I": 18}.items():
            ws.column_dimensions[col].width = w
        ws.append([])
        ws.append([f"Total products: {len(products)}", "", "", "", f"Rate: {rate:.4f} {Currency.BSF.value}/USD"])
        wb.save(path)

from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging
from pathlib import Path

from venstore.domain.errors import AppError
from venstore.services.reporting_service import Period
from venstore.ui.views import (
    AssistantView,
    CreditsView,
    ProductsView,
    RateView,
    ReportsView,
    SalesView,
)

log = logging.getLogger(__name__)


class App(tk.Tk):
    def __init__(self, container, db_path: str, logs_dir: str, exports_dir: str = ""):
        super().__init__()
        self.title("Venstore - Ventas e Inventario (USD + BsF)")
        self.geometry("1280x760")
        self.minsize(1120, 660)

        self.container = container
        self.rates = container.rates
        self.inventory = container.inventory
        self.cart = container.cart
        self.sales = container.sales
        self.credits = container.credits
        self.reporting = container.reporting
        self.assistant = container.assistant

        self.db_path = db_path
        self.logs_dir = logs_dir
        self.exports_dir = exports_dir

        # UI state
        self.rate_var = tk.StringVar(value="Tasa: -")
        self.status_var = tk.StringVar(value="")
        self._toast_after_id = None

        self._build_styles()
        self._build_topbar()

        main = ttk.Frame(self)
        main.pack(fill="both", expand=True, padx=12, pady=(0, 8))

        self.sidebar = ttk.Frame(main)
        self.sidebar.pack(side="left", fill="y", padx=(0, 10))

        self.content = ttk.Frame(main)
        self.content.pack(side="right", fill="both", expand=True)

        self.nb = ttk.Notebook(self.content, style="Side.TNotebook")
        self.nb.pack(fill="both", expand=True)

        # Views (tabs hidden)
        self.sales_view = SalesView(self.nb, self)
        self.products_view = ProductsView(self.nb, self)
        self.credits_view = CreditsView(self.nb, self)
        self.reports_view = ReportsView(self.nb, self)
        self.rate_view = RateView(self.nb, self)
        self.assistant_view = AssistantView(self.nb, self)

        self._build_sidebar()
        self._build_status_bar()

        self.nb.bind("<<NotebookTabChanged>>", self._on_tab_changed)
        self._on_tab_changed()

        self.refresh_all(show_toast=False)
        self.toast("Listo.", kind="info", ms=1200)

    def _build_styles(self):
        style = ttk.Style(self)
        style.layout("Side.TNotebook.Tab", [])
        style.configure("Side.TNotebook", tabmargins=0)

        try:
            style.configure("Big.TButton", padding=(14, 10))
            style.configure("Title.TLabel", font=("Segoe UI", 12, "bold"))
            style.configure("KPI.TLabel", font=("Segoe UI", 10))
            style.configure("KPIValue.TLabel", font=("Segoe UI", 11, "bold"))
            style.configure("Total.TLabel", font=("Segoe UI", 16, "bold"))
        except tk.TclError as e:
            log.exception("UI style setup failed: %s", e)

    def _build_topbar(self):
        top = ttk.Frame(self)
        top.pack(fill="x", padx=12, pady=10)

        ttk.Label(top, textvariable=self.rate_var, style="Title.TLabel").pack(side="left")
        ttk.Button(top, text="Cambiar tasa", command=lambda: self.show(self.rate_view)).pack(side="left", padx=10)

        # Show only file name (not full path)
        ttk.Label(top, text=f"DB: {Path(self.db_path).name}").pack(side="right")

    def _build_sidebar(self):
        box = ttk.LabelFrame(self.sidebar, text="Menú")
        box.pack(fill="x", pady=(0, 10))

        entries = [
            ("🧾 Ventas", self.sales_view),
            ("📦 Inventario", self.products_view),
            ("💳 Créditos", self.credits_view),
            ("📊 Reportes", self.reports_view),
            ("💱 Tasa de cambio", self.rate_view),
            ("🤖 Asistente", self.assistant_view),
        ]
        for i, (label, view) in enumerate(entries):
            ttk.Button(
                box, text=label, style="Big.TButton",
                command=lambda v=view: self.show(v),
            ).pack(fill="x", padx=10, pady=(10 if i == 0 else 6, 6))

        ttk.Button(box, text="🔄 Actualizar", style="Big.TButton",
                   command=self.refresh_all).pack(fill="x", padx=10, pady=(6, 10))

        kpi = ttk.LabelFrame(self.sidebar, text="Hoy")
        kpi.pack(fill="x")

        self.k_sales = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_usd = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_bsf = ttk.Label(kpi, text="-", style="KPIValue.TLabel")
        self.k_debt = ttk.Label(kpi, text="-", style="KPIValue.TLabel")

        labels = ["Ventas", "Total USD", "Total BsF", "Por cobrar USD"]
        widgets = [self.k_sales, self.k_usd, self.k_bsf, self.k_debt]
        for i, (lab, w) in enumerate(zip(labels, widgets)):
            ttk.Label(kpi, text=lab, style="KPI.TLabel").grid(
                row=i, column=0, sticky="w", padx=10, pady=(8 if i == 0 else 2, 2)
            )
            w.grid(row=i, column=1, sticky="e", padx=10, pady=(8 if i == 0 else 2, 2))

        kpi.columnconfigure(0, weight=1)
        kpi.columnconfigure(1, weight=1)

    def _build_status_bar(self):
        bar = ttk.Frame(self)
        bar.pack(fill="x", padx=12, pady=(0, 10))
        ttk.Label(bar, textvariable=self.status_var).pack(side="left")
        ttk.Label(bar, text=f"Logs: {self.logs_dir}").pack(side="right")

    # ---------- navigation ----------
    def show(self, view) -> None:
        self.nb.select(view.frame)

    def _on_tab_changed(self, _evt=None):
        current = self.nb.select()
        for view in (self.sales_view, self.products_view):
            if str(view.frame) == current:
                view.activate()
            else:
                view.deactivate()

    # ---------- feedback ----------
    def toast(self, msg: str, kind: str = "info", ms: int = 2500):
        prefix = {"info": "ℹ ", "success": "✅ ", "warn": "⚠ ", "error": "❌ "}.get(kind, "")
        self.status_var.set(prefix + msg)
        if self._toast_after_id is not None:
            try:
                self.after_cancel(self._toast_after_id)
            except tk.TclError:
                pass
        self._toast_after_id = self.after(ms, lambda: self.status_var.set(""))

    def confirm(self, title: str):
        """Confirmation callable for the service layer's destructive operations."""
        return lambda message: messagebox.askyesno(title, message, parent=self)

    def handle_error(self, title: str, err: Exception, toast_msg: str):
        if isinstance(err, AppError):
            messagebox.showwarning(title, str(err), parent=self)
            self.toast(toast_msg, kind="warn")
            return
        log.exception("%s: %s", title, err)
        messagebox.showerror(title, f"{toast_msg}\n\n{err}", parent=self)
        self.toast(toast_msg, kind="error")

    # ---------- refresh ----------
    def refresh_rate(self):
        rate = self.rates.get_rate()
        self.rate_var.set(f"Tasa: 1 USD = {rate:,.2f} BsF")

    def refresh_all(self, show_toast: bool = True):
        self.refresh_rate()

        self.sales_view.refresh()
        self.products_view.refresh()
        self.credits_view.refresh()
        self.reports_view.refresh()
        self.rate_view.refresh()

        self.refresh_kpis()

        if show_toast:
            self.toast("Actualizado.", kind="info", ms=1200)

    def refresh_kpis(self):
        try:
            summary = self.reporting.summary(Period.DAILY)
            self.k_sales.config(text=str(summary.sales_count))
            self.k_usd.config(text=f"{summary.total_usd:,.2f}")
            self.k_bsf.config(text=f"{summary.total_bsf:,.2f}")
            self.k_debt.config(text=f"{self.credits.total_open_usd():,.2f}")
        except Exception as e:
            log.exception("KPI refresh failed: %s", e)

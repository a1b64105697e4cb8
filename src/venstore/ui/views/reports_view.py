from __future__ import annotations

import tkinter as tk
from tkinter import ttk, filedialog
from datetime import date
from pathlib import Path

from venstore.domain.models import PaymentMethod
from venstore.services.reporting_service import PERIOD_LABELS, Period, items_label


class ReportsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Reportes")

        self.period = tk.StringVar(value=Period.DAILY.value)
        self.summary_var = tk.StringVar(value="")
        self._build()

    def _build(self):
        tab = self.frame

        top = ttk.Frame(tab)
        top.pack(fill="x", padx=10, pady=10)
        ttk.Label(top, text="Periodo").pack(side="left")
        for p, text in ((Period.DAILY, "Diario"), (Period.WEEKLY, "Semanal"), (Period.MONTHLY, "Mensual")):
            ttk.Radiobutton(top, text=text, value=p.value, variable=self.period, command=self.refresh)\
                .pack(side="left", padx=10)
        ttk.Button(top, text="Exportar ventas (Excel)", command=self.export_report).pack(side="right")
        ttk.Button(top, text="Exportar inventario (Excel)", command=self.export_inventory).pack(side="right", padx=10)

        ttk.Label(tab, textvariable=self.summary_var, style="Title.TLabel").pack(anchor="w", padx=10)

        dash = ttk.Frame(tab)
        dash.pack(fill="x", padx=10, pady=10)
        dash.columnconfigure(0, weight=2)
        dash.columnconfigure(1, weight=1)

        self.chart = tk.Canvas(dash, height=200, bg="#f8fafc", highlightthickness=1, highlightbackground="#cbd5e1")
        self.chart.grid(row=0, column=0, sticky="nsew", padx=(0, 6))

        cols = ("method", "count", "usd", "bsf")
        self.method_tree = ttk.Treeview(dash, columns=cols, show="headings", height=6)
        for c, text, w in (("method", "Método", 170), ("count", "Ventas", 60), ("usd", "USD", 90), ("bsf", "BsF", 110)):
            self.method_tree.heading(c, text=text)
            self.method_tree.column(c, width=w, anchor="w")
        self.method_tree.grid(row=0, column=1, sticky="nsew", padx=(6, 0))

        hist = ttk.LabelFrame(tab, text="Ventas del periodo (doble click para editar)")
        hist.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("id", "dt", "method", "customer", "usd", "bsf", "rate", "items")
        self.sales_tree = ttk.Treeview(hist, columns=cols, show="headings", height=8)
        heads = {"id": "ID", "dt": "Fecha", "method": "Método", "customer": "Cliente / Ref.",
                 "usd": "USD", "bsf": "BsF", "rate": "Tasa", "items": "Productos"}
        widths = {"id": 0, "dt": 140, "method": 150, "customer": 140, "usd": 90, "bsf": 110, "rate": 80, "items": 360}
        for c in cols:
            self.sales_tree.heading(c, text=heads[c])
            self.sales_tree.column(c, width=widths[c], anchor="w", stretch=c != "id")
        self.sales_tree.tag_configure("debt", foreground="#b45309")
        self.sales_tree.pack(fill="both", expand=True, padx=10, pady=10)
        self.sales_tree.bind("<Double-1>", self.open_sale_editor)

    def refresh(self):
        period = Period(self.period.get())
        summary = self.app.reporting.summary(period)
        self.summary_var.set(
            f"{PERIOD_LABELS[period]}: {summary.sales_count} ventas | "
            f"USD {summary.total_usd:,.2f} | BsF {summary.total_bsf:,.2f}"
        )

        for tree in (self.method_tree, self.sales_tree):
            for item in tree.get_children():
                tree.delete(item)

        for m, t in self.app.reporting.by_payment_method(period).items():
            self.method_tree.insert("", "end", values=(m.value, t.count, f"{t.usd:,.2f}", f"{t.bsf:,.2f}"))

        for s in reversed(self.app.reporting.sales_in_period(period)):
            who = s.customer_name or s.payment_reference or ""
            self.sales_tree.insert("", "end", values=(
                s.id, s.timestamp, s.payment_method.value, who, f"{s.total_usd:,.2f}",
                f"{s.total_bsf:,.2f}", f"{s.rate_at_sale:.2f}", items_label(s)[:140],
            ), tags=("debt",) if s.is_open_debt else ())

        self._draw_bar_chart(self.chart, "Ventas (USD)", self.app.reporting.chart_series(period))

    def _draw_bar_chart(self, canvas: tk.Canvas, title: str, data: list[tuple[str, float]], color: str = "#2563eb"):
        canvas.delete("all")
        w, h = int(canvas.winfo_width() or 560), int(canvas.winfo_height() or 200)
        if w < 50:
            w = 560
        if h < 50:
            h = 200
        canvas.create_text(12, 16, text=title, anchor="w", font=("Segoe UI", 10, "bold"), fill="#0f172a")
        if not data:
            canvas.create_text(w // 2, h // 2, text="Sin datos", fill="#64748b")
            return
        maxv = max(v for _, v in data) or 1
        bw = max(24, (w - 40) // len(data))
        for i, (label, val) in enumerate(data):
            x0 = 24 + i * bw
            x1 = x0 + bw - 8
            y1 = h - 30
            y0 = y1 - int((val / maxv) * (h - 70))
            canvas.create_rectangle(x0, y0, x1, y1, fill=color, outline="")
            canvas.create_text((x0 + x1) // 2, y1 + 12, text=label, font=("Segoe UI", 8), fill="#475569")
            canvas.create_text((x0 + x1) // 2, y0 - 8, text=f"{val:.0f}", font=("Segoe UI", 8), fill="#0f172a")

    # ---------- amend / retract ----------
    def open_sale_editor(self, _evt=None):
        sel = self.sales_tree.selection()
        if not sel:
            return
        sale_id = str(self.sales_tree.item(sel[0], "values")[0])
        try:
            draft = self.app.sales.draft(sale_id)
        except Exception as e:
            self.app.handle_error("Venta", e, "Venta no encontrada.")
            return

        win = tk.Toplevel(self.app)
        win.title(f"Venta {draft.original.timestamp}")
        win.geometry("820x520")
        win.transient(self.app)
        win.grab_set()

        total_var = tk.StringVar()
        ttk.Label(win, text=f"Tasa de la venta: {draft.original.rate_at_sale:,.4f}").pack(anchor="w", padx=10, pady=(10, 2))
        ttk.Label(win, textvariable=total_var, style="Title.TLabel").pack(anchor="w", padx=10, pady=(0, 6))

        cols = ("name", "qty", "price", "cur")
        tree = ttk.Treeview(win, columns=cols, show="headings", height=10)
        for c, text, width in (("name", "Producto", 380), ("qty", "Cant.", 70), ("price", "Precio", 100), ("cur", "Moneda", 80)):
            tree.heading(c, text=text)
            tree.column(c, width=width, anchor="w")
        tree.pack(fill="both", expand=True, padx=10, pady=6)

        def render():
            for item in tree.get_children():
                tree.delete(item)
            for idx, it in enumerate(draft.items):
                tree.insert("", "end", iid=str(idx), values=(it.name, f"{it.quantity:g}", f"{it.price:.2f}", it.currency.value))
            t = draft.totals()
            total_var.set(f"USD {t.usd:,.2f} | BsF {t.bsf:,.2f}")

        def remove_line():
            picked = tree.selection()
            if not picked:
                return
            draft.remove_item(int(picked[0]))
            render()

        pay = ttk.Frame(win)
        pay.pack(fill="x", padx=10, pady=6)
        method = tk.StringVar(value=PaymentMethod(draft.payment_method).value)
        ttk.Combobox(pay, textvariable=method, values=[m.value for m in PaymentMethod], state="readonly", width=24)\
            .pack(side="left")
        ttk.Label(pay, text="Cliente").pack(side="left", padx=(10, 4))
        cust_e = ttk.Entry(pay, width=20)
        cust_e.insert(0, draft.customer_name or "")
        cust_e.pack(side="left")
        ttk.Label(pay, text="Ref.").pack(side="left", padx=(10, 4))
        ref_e = ttk.Entry(pay, width=14)
        ref_e.insert(0, draft.payment_reference or "")
        ref_e.pack(side="left")

        def save():
            draft.payment_method = PaymentMethod(method.get())
            draft.customer_name = cust_e.get()
            draft.payment_reference = ref_e.get()
            try:
                saved = self.app.sales.save_draft(draft, confirm=self.app.confirm("Guardar cambios"))
            except Exception as e:
                self.app.handle_error("Editar venta", e, "Cambios no guardados.")
                return
            if saved is None:
                return
            win.destroy()
            self.app.toast("Venta actualizada.", kind="success")
            self.app.refresh_all(show_toast=False)

        def delete():
            try:
                removed = self.app.sales.retract(draft.sale_id, confirm=self.app.confirm("Eliminar venta"))
            except Exception as e:
                self.app.handle_error("Eliminar venta", e, "Venta no eliminada.")
                return
            if removed is None:
                return
            win.destroy()
            self.app.toast("Venta eliminada. Stock restaurado.", kind="success")
            self.app.refresh_all(show_toast=False)

        btns = ttk.Frame(win)
        btns.pack(fill="x", padx=10, pady=(6, 10))
        ttk.Button(btns, text="Quitar producto", command=remove_line).pack(side="left")
        ttk.Button(btns, text="Eliminar venta", command=delete).pack(side="left", padx=10)
        ttk.Button(btns, text="Guardar", style="Big.TButton", command=save).pack(side="right")

        render()

    # ---------- exports ----------
    def _ask_path(self, prefix: str) -> str:
        return filedialog.asksaveasfilename(
            title="Guardar como",
            defaultextension=".xlsx",
            filetypes=[("Excel files", "*.xlsx")],
            initialdir=self.app.exports_dir or None,
            initialfile=f"{prefix}_{date.today().isoformat()}.xlsx",
        )

    def export_report(self):
        period = Period(self.period.get())
        path = self._ask_path(f"ventas_{period.value.lower()}")
        if not path:
            return
        try:
            self.app.reporting.export_sales_report_excel(path, period)
            self.app.toast(f"Reporte exportado: {Path(path).name}", kind="success")
        except Exception as e:
            self.app.handle_error("Exportar", e, "Exportación fallida.")

    def export_inventory(self):
        path = self._ask_path("inventario")
        if not path:
            return
        try:
            self.app.reporting.export_inventory_excel(path)
            self.app.toast(f"Inventario exportado: {Path(path).name}", kind="success")
        except Exception as e:
            self.app.handle_error("Exportar", e, "Exportación fallida.")

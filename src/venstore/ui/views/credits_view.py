from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox

from venstore.domain.models import PaymentMethod
from venstore.services.reporting_service import items_label

SETTLE_METHODS = [m.value for m in PaymentMethod if m is not PaymentMethod.CREDITO]


class CreditsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Créditos")

        self.search_var = tk.StringVar()
        self.total_var = tk.StringVar(value="")
        self._build()

    def _build(self):
        tab = self.frame

        bar = ttk.Frame(tab)
        bar.pack(fill="x", padx=10, pady=10)
        ttk.Label(bar, text="Cliente").pack(side="left")
        search_e = ttk.Entry(bar, textvariable=self.search_var, width=30)
        search_e.pack(side="left", padx=10)
        search_e.bind("<KeyRelease>", lambda _e: self.refresh())
        ttk.Label(bar, textvariable=self.total_var, style="Title.TLabel").pack(side="right")

        box = ttk.LabelFrame(tab, text="Cuentas por cobrar (doble click para cobrar)")
        box.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cols = ("id", "dt", "customer", "usd", "bsf", "items")
        self.tree = ttk.Treeview(box, columns=cols, show="headings", height=14)
        heads = {"id": "ID", "dt": "Fecha", "customer": "Cliente", "usd": "USD", "bsf": "BsF", "items": "Productos"}
        widths = {"id": 0, "dt": 150, "customer": 180, "usd": 100, "bsf": 120, "items": 420}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w", stretch=c != "id")
        self.tree.pack(fill="both", expand=True, padx=10, pady=10)
        self.tree.bind("<Double-1>", self.open_settle_dialog)

        ttk.Button(box, text="Registrar pago", style="Big.TButton", command=self.open_settle_dialog)\
            .pack(anchor="e", padx=10, pady=(0, 10))

        by_cust = ttk.LabelFrame(tab, text="Por cliente")
        by_cust.pack(fill="x", padx=10, pady=(0, 10))
        cols = ("customer", "count", "usd", "bsf")
        self.cust_tree = ttk.Treeview(by_cust, columns=cols, show="headings", height=5)
        for c, text, w in (("customer", "Cliente", 240), ("count", "Ventas", 80), ("usd", "USD", 120), ("bsf", "BsF", 140)):
            self.cust_tree.heading(c, text=text)
            self.cust_tree.column(c, width=w, anchor="w")
        self.cust_tree.pack(fill="x", padx=10, pady=10)

    def refresh(self):
        for tree in (self.tree, self.cust_tree):
            for item in tree.get_children():
                tree.delete(item)

        for s in self.app.credits.open_debts(self.search_var.get()):
            self.tree.insert("", "end", values=(
                s.id, s.timestamp, s.customer_name or "", f"{s.total_usd:,.2f}", f"{s.total_bsf:,.2f}",
                items_label(s)[:160],
            ))
        for name, count, usd, bsf in self.app.credits.debts_by_customer():
            self.cust_tree.insert("", "end", values=(name, count, f"{usd:,.2f}", f"{bsf:,.2f}"))

        self.total_var.set(
            f"Total por cobrar: USD {self.app.credits.total_open_usd():,.2f} | "
            f"BsF {self.app.credits.total_open_bsf():,.2f}"
        )

    def open_settle_dialog(self, _evt=None):
        sel = self.tree.selection()
        if not sel:
            messagebox.showwarning("Validación", "Seleccione una deuda.", parent=self.frame)
            return
        values = self.tree.item(sel[0], "values")
        sale_id, customer, usd = str(values[0]), values[2], values[3]

        win = tk.Toplevel(self.app)
        win.title("Registrar pago")
        win.transient(self.app)
        win.grab_set()

        ttk.Label(win, text=f"{customer}: USD {usd}", style="Title.TLabel").pack(anchor="w", padx=12, pady=(12, 8))
        method = tk.StringVar(value=SETTLE_METHODS[0])
        ttk.Combobox(win, textvariable=method, values=SETTLE_METHODS, state="readonly", width=28)\
            .pack(padx=12, pady=4)
        ttk.Label(win, text="Referencia (Pago Móvil)").pack(anchor="w", padx=12)
        ref_e = ttk.Entry(win, width=30)
        ref_e.pack(padx=12, pady=(0, 8))

        def do_settle():
            try:
                self.app.credits.settle(sale_id, PaymentMethod(method.get()), ref_e.get())
            except Exception as e:
                self.app.handle_error("Cobro", e, "Pago no registrado.")
                return
            win.destroy()
            self.app.toast(f"Deuda de {customer} cobrada.", kind="success")
            self.app.refresh_all(show_toast=False)

        ttk.Button(win, text="Confirmar", style="Big.TButton", command=do_settle).pack(fill="x", padx=12, pady=(4, 12))

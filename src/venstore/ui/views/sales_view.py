from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
import logging

from venstore.domain.models import Currency, PaymentMethod
from venstore.ui.barcode import KeyboardWedgeCapture

log = logging.getLogger(__name__)


class SalesView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Ventas")

        self.sale_pick = tk.StringVar()
        self.total_usd_var = tk.StringVar(value="USD 0.00")
        self.total_bsf_var = tk.StringVar(value="BsF 0.00")
        self.method_var = tk.StringVar(value=PaymentMethod.EFECTIVO_USD.value)
        self.manual_currency = tk.StringVar(value=Currency.USD.value)

        self.sale_all_choices: list[str] = []
        self.sale_id_map: dict[str, str] = {}

        self._scanner = KeyboardWedgeCapture(app)
        self._close_scanner = None

        self._build()

    def _build(self):
        tab = self.frame

        top = ttk.LabelFrame(tab, text="Agregar producto")
        top.pack(fill="x", padx=10, pady=10)

        ttk.Label(top, text="Buscar (nombre o código)").grid(row=0, column=0, padx=10, pady=8, sticky="w")
        self.combo = ttk.Combobox(top, textvariable=self.sale_pick, width=56)
        self.combo.grid(row=0, column=1, padx=10, pady=8, sticky="w")
        self.combo.bind("<KeyRelease>", lambda e: self._filter_combobox(self.sale_pick.get()))

        ttk.Label(top, text="Cant.").grid(row=0, column=2, padx=10, pady=8, sticky="w")
        self.qty_e = ttk.Entry(top, width=8)
        self.qty_e.grid(row=0, column=3, padx=10, pady=8, sticky="w")

        ttk.Button(top, text="Agregar", style="Big.TButton", command=self.add_to_cart)\
            .grid(row=0, column=4, padx=10, pady=8)

        self.combo.bind("<Return>", self._on_return)
        self.qty_e.bind("<Return>", self._on_return)

        manual = ttk.LabelFrame(tab, text="Producto manual (fuera de inventario)")
        manual.pack(fill="x", padx=10, pady=(0, 10))

        ttk.Label(manual, text="Nombre").grid(row=0, column=0, padx=10, pady=8, sticky="w")
        self.m_name = ttk.Entry(manual, width=30)
        self.m_name.grid(row=0, column=1, padx=6, pady=8, sticky="w")
        ttk.Label(manual, text="Precio").grid(row=0, column=2, padx=10, pady=8, sticky="w")
        self.m_price = ttk.Entry(manual, width=10)
        self.m_price.grid(row=0, column=3, padx=6, pady=8, sticky="w")
        ttk.Combobox(manual, textvariable=self.manual_currency, values=[c.value for c in Currency],
                     width=6, state="readonly").grid(row=0, column=4, padx=6, pady=8)
        ttk.Label(manual, text="Cant.").grid(row=0, column=5, padx=10, pady=8, sticky="w")
        self.m_qty = ttk.Entry(manual, width=6)
        self.m_qty.grid(row=0, column=6, padx=6, pady=8, sticky="w")
        ttk.Button(manual, text="Agregar manual", command=self.add_manual).grid(row=0, column=7, padx=10, pady=8)

        mid = ttk.Frame(tab)
        mid.pack(fill="both", expand=True, padx=10, pady=(0, 10))

        cart_box = ttk.LabelFrame(mid, text="Carrito")
        cart_box.pack(side="left", fill="both", expand=True, padx=(0, 10))

        cols = ("name", "qty", "unit", "cur", "usd", "bsf")
        self.cart_tree = ttk.Treeview(cart_box, columns=cols, show="headings", height=14)
        heads = {"name": "Producto", "qty": "Cant.", "unit": "Precio", "cur": "Moneda", "usd": "USD", "bsf": "BsF"}
        widths = {"name": 320, "qty": 60, "unit": 90, "cur": 70, "usd": 100, "bsf": 120}
        for c in cols:
            self.cart_tree.heading(c, text=heads[c])
            self.cart_tree.column(c, width=widths[c], anchor="w")
        self.cart_tree.tag_configure("manual", foreground="#7c3aed")
        self.cart_tree.pack(fill="both", expand=True, padx=10, pady=10)

        btnrow = ttk.Frame(cart_box)
        btnrow.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Button(btnrow, text="Quitar seleccionado", command=self.remove_selected).pack(side="left")
        ttk.Button(btnrow, text="Vaciar carrito", command=self.clear_cart).pack(side="left", padx=10)
        ttk.Button(btnrow, text="↩ Deshacer última venta", command=self.undo_last).pack(side="right")

        right = ttk.LabelFrame(mid, text="Cobrar")
        right.pack(side="right", fill="y")

        ttk.Label(right, textvariable=self.total_usd_var, style="Total.TLabel").pack(anchor="w", padx=10, pady=(10, 2))
        ttk.Label(right, textvariable=self.total_bsf_var, style="Title.TLabel").pack(anchor="w", padx=10, pady=(0, 10))

        ttk.Label(right, text="Método de pago").pack(anchor="w", padx=10)
        method_cb = ttk.Combobox(right, textvariable=self.method_var, values=[m.value for m in PaymentMethod],
                                 width=28, state="readonly")
        method_cb.pack(padx=10, pady=(0, 8))
        method_cb.bind("<<ComboboxSelected>>", lambda _e: self._sync_payment_fields())

        ttk.Label(right, text="Cliente (crédito)").pack(anchor="w", padx=10)
        self.customer_e = ttk.Entry(right, width=30)
        self.customer_e.pack(padx=10, pady=(0, 8))

        ttk.Label(right, text="Referencia (Pago Móvil)").pack(anchor="w", padx=10)
        self.reference_e = ttk.Entry(right, width=30)
        self.reference_e.pack(padx=10, pady=(0, 8))

        ttk.Button(right, text="Confirmar venta", style="Big.TButton", command=self.confirm_sale)\
            .pack(fill="x", padx=10, pady=(8, 10))

        self._sync_payment_fields()

    # ---------- scanner ----------
    def activate(self):
        if self._close_scanner is None:
            self._close_scanner = self._scanner.open(self.on_scan)

    def deactivate(self):
        if self._close_scanner is not None:
            self._close_scanner()
            self._close_scanner = None

    def _on_return(self, event):
        if self._close_scanner is not None and self._scanner.buffer.completes_scan(int(event.time)):
            # the window-level listener turns this burst into a cart line
            event.widget.delete(0, tk.END)
            return None
        self.add_to_cart()
        return "break"

    def on_scan(self, code: str):
        self.sale_pick.set("")
        try:
            line = self.app.cart.add_by_barcode(code)
        except Exception as e:
            self.app.handle_error("Escáner", e, f"Código {code} no agregado.")
            return
        self.refresh_cart_view()
        self.app.toast(f"Escaneado: {line.name}", kind="success", ms=1500)

    # ---------- product choices ----------
    def _filter_combobox(self, typed: str):
        typed = typed.strip().lower()
        self.combo["values"] = self.sale_all_choices if not typed else [
            c for c in self.sale_all_choices if typed in c.lower()
        ]

    def refresh_product_choices(self):
        choices = []
        mapping = {}
        for p in self.app.inventory.list_products():
            code = f" [{p.barcode}]" if p.barcode else ""
            label = f"{p.name}{code} - {p.price:.2f} {p.currency.value} (stock: {p.stock:g})"
            choices.append(label)
            mapping[label] = p.id
        self.sale_all_choices = choices
        self.sale_id_map = mapping
        self.combo["values"] = choices

    def refresh(self):
        self.refresh_product_choices()
        self.refresh_cart_view()

    # ---------- cart ----------
    def add_to_cart(self):
        picked = self.sale_pick.get().strip()
        if not picked:
            messagebox.showwarning("Validación", "Seleccione un producto.")
            return

        product_id = self.sale_id_map.get(picked)
        try:
            if product_id:
                line = self.app.cart.add_catalog_item(product_id, self.qty_e.get().strip() or 1)
            else:
                # typed text that looks like a barcode
                line = self.app.cart.add_by_barcode(picked, self.qty_e.get().strip() or 1)
        except Exception as e:
            self.app.handle_error("Carrito", e, "No se pudo agregar.")
            return

        self.sale_pick.set("")
        self.qty_e.delete(0, tk.END)
        self.refresh_cart_view()
        self.app.toast(f"Agregado: {line.name}", kind="success", ms=1500)

    def add_manual(self):
        try:
            line = self.app.cart.add_manual_item(
                self.m_name.get(),
                self.m_price.get().strip().replace(",", "."),
                Currency(self.manual_currency.get()),
                self.m_qty.get().strip() or 1,
            )
        except Exception as e:
            self.app.handle_error("Producto manual", e, "No se pudo agregar.")
            return
        for entry in (self.m_name, self.m_price, self.m_qty):
            entry.delete(0, tk.END)
        self.refresh_cart_view()
        self.app.toast(f"Agregado: {line.name}", kind="success", ms=1500)

    def refresh_cart_view(self):
        for item in self.cart_tree.get_children():
            self.cart_tree.delete(item)

        rate = self.app.rates.get_rate()
        for idx, it in enumerate(self.app.cart.lines):
            usd = it.amount if it.currency is Currency.USD else it.amount / rate
            bsf = it.amount if it.currency is Currency.BSF else it.amount * rate
            self.cart_tree.insert("", "end", iid=str(idx), values=(
                it.name, f"{it.quantity:g}", f"{it.price:.2f}", it.currency.value, f"{usd:,.2f}", f"{bsf:,.2f}"
            ), tags=("manual",) if it.is_manual else ())

        totals = self.app.cart.totals()
        self.total_usd_var.set(f"USD {totals.usd:,.2f}")
        self.total_bsf_var.set(f"BsF {totals.bsf:,.2f}")

    def remove_selected(self):
        sel = self.cart_tree.selection()
        if not sel:
            return
        try:
            self.app.cart.remove_line(int(sel[0]))
        except Exception as e:
            self.app.handle_error("Carrito", e, "No se pudo quitar.")
            return
        self.refresh_cart_view()
        self.app.toast("Quitado del carrito.", kind="info", ms=1500)

    def clear_cart(self):
        if self.app.cart.clear(confirm=self.app.confirm("Vaciar carrito")):
            self.refresh_cart_view()
            self.app.toast("Carrito vacío.", kind="info", ms=1500)

    # ---------- payment ----------
    def _sync_payment_fields(self):
        method = PaymentMethod(self.method_var.get())
        self.customer_e.configure(state="normal" if method.requires_customer else "disabled")
        self.reference_e.configure(state="normal" if method.requires_reference else "disabled")

    def _reset_payment_fields(self):
        for entry in (self.customer_e, self.reference_e):
            entry.configure(state="normal")
            entry.delete(0, tk.END)
        self.method_var.set(PaymentMethod.EFECTIVO_USD.value)
        self._sync_payment_fields()

    def confirm_sale(self):
        try:
            sale = self.app.sales.commit(
                self.app.cart,
                PaymentMethod(self.method_var.get()),
                customer_name=self.customer_e.get(),
                payment_reference=self.reference_e.get(),
            )
        except Exception as e:
            self.app.handle_error("Venta", e, "Venta no registrada.")
            return

        self.app.toast(f"Venta registrada: USD {sale.total_usd:,.2f} / BsF {sale.total_bsf:,.2f}", kind="success")
        self._reset_payment_fields()
        self.app.refresh_all(show_toast=False)

    def undo_last(self):
        try:
            sale = self.app.sales.undo_last(confirm=self.app.confirm("Deshacer venta"))
        except Exception as e:
            self.app.handle_error("Deshacer", e, "No se pudo deshacer.")
            return
        if sale is None:
            return
        self.app.toast(f"Venta anulada (USD {sale.total_usd:,.2f}). Stock restaurado.", kind="success")
        self.app.refresh_all(show_toast=False)

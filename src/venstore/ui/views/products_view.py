from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox
from dataclasses import replace
import logging

from venstore.domain.models import Currency, ProductCategory
from venstore.domain.money import to_other
from venstore.services.inventory_service import price_from_margin
from venstore.ui.barcode import KeyboardWedgeCapture

log = logging.getLogger(__name__)

ALL_CATEGORIES = "Todas"


class ProductsView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Inventario")

        self.editing_id: str | None = None
        self.search_var = tk.StringVar()
        self.filter_cat = tk.StringVar(value=ALL_CATEGORIES)
        self.category_var = tk.StringVar(value=ProductCategory.VIVERES.value)
        self.currency_var = tk.StringVar(value=Currency.USD.value)
        self.form_title = tk.StringVar(value="Nuevo producto")

        self._scanner = KeyboardWedgeCapture(app)
        self._close_scanner = None

        tab = self.frame
        style = ttk.Style(self.frame)
        style.configure("ProductsCompact.Treeview", rowheight=24, font=("Segoe UI", 9))
        style.configure("ProductsCompact.Treeview.Heading", font=("Segoe UI", 9, "bold"))

        left = ttk.LabelFrame(tab, text="Producto", width=300)
        left.pack(side="left", fill="y", padx=(0, 6), pady=8)
        left.pack_propagate(False)

        right = ttk.LabelFrame(tab, text="Inventario")
        right.pack(side="right", fill="both", expand=True, pady=8)

        ttk.Label(left, textvariable=self.form_title, style="Title.TLabel")\
            .grid(row=0, column=0, columnspan=2, sticky="w", padx=8, pady=(6, 4))
        self.p_name = self._entry(left, "Nombre", 1)
        ttk.Label(left, text="Categoría").grid(row=2, column=0, sticky="w", padx=8, pady=4)
        ttk.Combobox(left, textvariable=self.category_var, values=[c.value for c in ProductCategory],
                     state="readonly", width=16).grid(row=2, column=1, sticky="ew", padx=8, pady=4)
        self.p_cost = self._entry(left, "Costo", 3)
        self.p_margin = self._entry(left, "Margen %", 4)
        self.p_price = self._entry(left, "Precio", 5)
        ttk.Label(left, text="Moneda").grid(row=6, column=0, sticky="w", padx=8, pady=4)
        ttk.Combobox(left, textvariable=self.currency_var, values=[c.value for c in Currency],
                     state="readonly", width=16).grid(row=6, column=1, sticky="ew", padx=8, pady=4)
        self.p_unit = self._entry(left, "Unidad", 7)
        self.p_case = self._entry(left, "Unid./bulto", 8)
        self.p_stock = self._entry(left, "Stock", 9)
        self.p_barcode = self._entry(left, "Código", 10)

        for entry in (self.p_cost, self.p_margin):
            entry.bind("<KeyRelease>", self._suggest_price)

        btns = ttk.Frame(left)
        btns.grid(row=11, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))
        for i in range(3):
            btns.columnconfigure(i, weight=1)

        ttk.Button(btns, text="Guardar", command=self.on_save_product).grid(row=0, column=0, sticky="ew", padx=(0, 6))
        ttk.Button(btns, text="Eliminar", command=self.on_delete_product).grid(row=0, column=1, sticky="ew", padx=6)
        ttk.Button(btns, text="Limpiar", command=self.clear_form).grid(row=0, column=2, sticky="ew", padx=(6, 0))

        adj = ttk.LabelFrame(left, text="Entrada rápida de stock")
        adj.grid(row=12, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 8))
        self.adj_e = ttk.Entry(adj, width=8)
        self.adj_e.pack(side="left", padx=8, pady=8)
        ttk.Button(adj, text="Aplicar (+/-)", command=self.on_adjust_stock).pack(side="left", padx=8, pady=8)

        bar = ttk.Frame(right)
        bar.pack(fill="x", padx=6, pady=(6, 0))
        ttk.Label(bar, text="Buscar").pack(side="left")
        search_e = ttk.Entry(bar, textvariable=self.search_var, width=30)
        search_e.pack(side="left", padx=8)
        search_e.bind("<KeyRelease>", lambda _e: self.refresh())
        cat_cb = ttk.Combobox(bar, textvariable=self.filter_cat, state="readonly", width=18,
                              values=[ALL_CATEGORIES] + [c.value for c in ProductCategory])
        cat_cb.pack(side="left", padx=8)
        cat_cb.bind("<<ComboboxSelected>>", lambda _e: self.refresh())

        tree_wrap = ttk.Frame(right)
        tree_wrap.pack(fill="both", expand=True, padx=6, pady=6)

        cols = ("id", "name", "cat", "price", "other", "stock", "unit", "barcode")
        self.tree = ttk.Treeview(tree_wrap, columns=cols, show="headings", height=20, style="ProductsCompact.Treeview")
        heads = {
            "id": "ID", "name": "Nombre", "cat": "Categoría", "price": "Precio",
            "other": "Equivalente", "stock": "Stock", "unit": "Unidad", "barcode": "Código",
        }
        widths = {"id": 0, "name": 260, "cat": 110, "price": 100, "other": 120, "stock": 70, "unit": 80, "barcode": 120}
        for c in cols:
            self.tree.heading(c, text=heads[c])
            self.tree.column(c, width=widths[c], anchor="w", stretch=c != "id")

        self.tree.tag_configure("low", background="#ffdddd")
        self.tree.bind("<Double-1>", self.on_edit_selected)

        vsb = ttk.Scrollbar(tree_wrap, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=vsb.set)
        self.tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")

        tree_wrap.columnconfigure(0, weight=1)
        tree_wrap.rowconfigure(0, weight=1)

        # App calls refresh_all() after every view exists.

    def _entry(self, parent, label, row):
        ttk.Label(parent, text=label).grid(row=row, column=0, sticky="w", padx=8, pady=4)
        e = ttk.Entry(parent, width=16)
        e.grid(row=row, column=1, sticky="ew", padx=8, pady=4)
        parent.columnconfigure(1, weight=1)
        return e

    @staticmethod
    def _text(entry) -> str:
        return entry.get().strip().replace(",", ".")

    # ---------- scanner ----------
    def activate(self):
        if self._close_scanner is None:
            self._close_scanner = self._scanner.open(self.on_scan)

    def deactivate(self):
        if self._close_scanner is not None:
            self._close_scanner()
            self._close_scanner = None

    def on_scan(self, code: str):
        if self.app.focus_get() is self.p_barcode:
            self.p_barcode.delete(0, tk.END)
            self.p_barcode.insert(0, code)
            return
        self.search_var.set(code)
        self.refresh()

    # ---------- form ----------
    def _suggest_price(self, _evt=None):
        try:
            cost = float(self._text(self.p_cost) or 0)
            margin = float(self._text(self.p_margin) or 0)
        except ValueError:
            return
        price = price_from_margin(cost, margin)
        if price is not None:
            self.p_price.delete(0, tk.END)
            self.p_price.insert(0, f"{price:.2f}")

    def on_save_product(self):
        fields = dict(
            name=self.p_name.get(),
            price=self._text(self.p_price),
            currency=Currency(self.currency_var.get()),
            category=ProductCategory(self.category_var.get()),
            unit=self.p_unit.get(),
            units_per_case=self._text(self.p_case) or 1,
            stock=self._text(self.p_stock) or 0,
            barcode=self.p_barcode.get(),
            cost=self._text(self.p_cost) or None,
            profit_margin=self._text(self.p_margin) or None,
        )
        try:
            if self.editing_id:
                current = self.app.inventory.get_product(self.editing_id)
                saved = self.app.inventory.upsert(replace(current, **fields))
            else:
                saved = self.app.inventory.create_product(**fields)
        except Exception as e:
            self.app.handle_error("Producto", e, "Producto no guardado.")
            return

        self.app.toast(f"Guardado: {saved.name}", kind="success")
        self.clear_form()
        self.app.refresh_all(show_toast=False)

    def on_delete_product(self):
        selected = self.tree.selection()
        if not selected:
            messagebox.showwarning("Validación", "Seleccione un producto.", parent=self.frame)
            return
        values = self.tree.item(selected[0], "values")
        product_id, product_name = str(values[0]), str(values[1])

        confirmed = messagebox.askyesno(
            "Eliminar producto",
            f"¿Eliminar '{product_name}'?\n\nLas ventas registradas no cambian.",
            parent=self.frame,
        )
        if not confirmed:
            return
        try:
            self.app.inventory.remove(product_id)
        except Exception as e:
            self.app.handle_error("Eliminar producto", e, "No se pudo eliminar.")
            return
        if self.editing_id == product_id:
            self.clear_form()
        self.app.toast("Producto eliminado.", kind="success")
        self.app.refresh_all(show_toast=False)

    def on_adjust_stock(self):
        selected = self.tree.selection()
        if not selected:
            messagebox.showwarning("Validación", "Seleccione un producto.", parent=self.frame)
            return
        product_id = str(self.tree.item(selected[0], "values")[0])
        try:
            stock = self.app.inventory.adjust_stock(product_id, self._text(self.adj_e))
        except Exception as e:
            self.app.handle_error("Stock", e, "Stock no actualizado.")
            return
        self.adj_e.delete(0, tk.END)
        self.app.toast(f"Stock actual: {stock:g}", kind="success")
        self.app.refresh_all(show_toast=False)

    def on_edit_selected(self, _evt=None):
        selected = self.tree.selection()
        if not selected:
            return
        product = self.app.inventory.get_product(str(self.tree.item(selected[0], "values")[0]))
        self.clear_form()
        self.editing_id = product.id
        self.form_title.set(f"Editando: {product.name}")
        self.p_name.insert(0, product.name)
        self.category_var.set(product.category.value)
        self.currency_var.set(product.currency.value)
        self.p_price.insert(0, f"{product.price:.2f}")
        self.p_unit.insert(0, product.unit)
        self.p_case.insert(0, str(product.units_per_case))
        self.p_stock.insert(0, f"{product.stock:g}")
        if product.barcode:
            self.p_barcode.insert(0, product.barcode)
        if product.cost is not None:
            self.p_cost.insert(0, f"{product.cost:g}")
        if product.profit_margin is not None:
            self.p_margin.insert(0, f"{product.profit_margin:g}")

    def clear_form(self):
        self.editing_id = None
        self.form_title.set("Nuevo producto")
        for e in (self.p_name, self.p_cost, self.p_margin, self.p_price, self.p_unit,
                  self.p_case, self.p_stock, self.p_barcode):
            e.delete(0, tk.END)
        self.p_name.focus_set()

    def refresh(self):
        for item in self.tree.get_children():
            self.tree.delete(item)

        cat = self.filter_cat.get()
        category = None if cat == ALL_CATEGORIES else ProductCategory(cat)
        rate = self.app.rates.get_rate()
        for p in self.app.inventory.search(self.search_var.get(), category):
            other_cur = Currency.BSF if p.currency is Currency.USD else Currency.USD
            other = to_other(p.price, p.currency, rate)
            self.tree.insert(
                "", "end",
                values=(
                    p.id, p.name, p.category.value, f"{p.price:,.2f} {p.currency.value}",
                    f"{other:,.2f} {other_cur.value}", f"{p.stock:g}", p.unit, p.barcode or "",
                ),
                tags=("low",) if p.stock <= 0 else (),
            )

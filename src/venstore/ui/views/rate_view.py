from __future__ import annotations

import tkinter as tk
from tkinter import ttk

from venstore.services.rate_service import BSF_TO_USD, QUICK_AMOUNTS, USD_TO_BSF


class RateView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Tasa")

        self.current_var = tk.StringVar(value="-")
        self.direction = tk.StringVar(value=USD_TO_BSF)
        self.result_var = tk.StringVar(value="")
        self._build()

    def _build(self):
        tab = self.frame

        box = ttk.LabelFrame(tab, text="Tasa de cambio (BsF por USD)")
        box.pack(fill="x", padx=10, pady=10)

        ttk.Label(box, text="Tasa actual").grid(row=0, column=0, sticky="w", padx=10, pady=8)
        ttk.Label(box, textvariable=self.current_var, style="Total.TLabel").grid(row=0, column=1, sticky="w", padx=10)

        ttk.Label(box, text="Nueva tasa").grid(row=1, column=0, sticky="w", padx=10, pady=8)
        self.rate_e = ttk.Entry(box, width=16)
        self.rate_e.grid(row=1, column=1, sticky="w", padx=10)
        ttk.Button(box, text="Guardar", style="Big.TButton", command=self.save_rate)\
            .grid(row=1, column=2, padx=10, pady=8)
        self.rate_e.bind("<Return>", lambda _e: self.save_rate())

        conv = ttk.LabelFrame(tab, text="Calculadora")
        conv.pack(fill="x", padx=10, pady=(0, 10))

        row = ttk.Frame(conv)
        row.pack(fill="x", padx=10, pady=8)
        ttk.Radiobutton(row, text="USD → BsF", value=USD_TO_BSF, variable=self.direction,
                        command=self.convert).pack(side="left")
        ttk.Radiobutton(row, text="BsF → USD", value=BSF_TO_USD, variable=self.direction,
                        command=self.convert).pack(side="left", padx=10)

        row2 = ttk.Frame(conv)
        row2.pack(fill="x", padx=10, pady=8)
        ttk.Label(row2, text="Monto").pack(side="left")
        self.amount_e = ttk.Entry(row2, width=16)
        self.amount_e.pack(side="left", padx=10)
        self.amount_e.bind("<KeyRelease>", lambda _e: self.convert())
        ttk.Label(row2, textvariable=self.result_var, style="Title.TLabel").pack(side="left", padx=10)

        quick = ttk.Frame(conv)
        quick.pack(fill="x", padx=10, pady=(0, 10))
        for amount in QUICK_AMOUNTS:
            ttk.Button(quick, text=str(amount), command=lambda a=amount: self._quick(a)).pack(side="left", padx=(0, 6))

    def refresh(self):
        self.current_var.set(f"{self.app.rates.get_rate():,.4f}")
        self.convert()

    def save_rate(self):
        try:
            rate = self.app.rates.set_rate(self.rate_e.get().strip())
        except Exception as e:
            self.app.handle_error("Tasa", e, "Tasa no guardada.")
            return
        self.rate_e.delete(0, tk.END)
        self.app.toast(f"Tasa actualizada: {rate:,.4f}", kind="success")
        # carts and open screens follow the new rate immediately
        self.app.refresh_all(show_toast=False)

    def _quick(self, amount: int):
        self.amount_e.delete(0, tk.END)
        self.amount_e.insert(0, str(amount))
        self.convert()

    def convert(self):
        raw = self.amount_e.get().strip().replace(",", ".")
        if not raw:
            self.result_var.set("")
            return
        try:
            amount = float(raw)
        except ValueError:
            self.result_var.set("Monto inválido")
            return
        value = self.app.rates.convert(amount, self.direction.get())
        suffix = "BsF" if self.direction.get() == USD_TO_BSF else "USD"
        self.result_var.set(f"= {value:,.2f} {suffix}")

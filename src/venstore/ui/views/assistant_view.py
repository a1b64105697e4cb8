from __future__ import annotations

import threading
import tkinter as tk
from tkinter import ttk

SUGGESTIONS = (
    "¿Qué productos se venden más?",
    "¿Qué debo reponer esta semana?",
    "¿Cómo van las ventas en comparación con la semana pasada?",
)


class AssistantView:
    def __init__(self, notebook: ttk.Notebook, app):
        self.app = app
        self.frame = ttk.Frame(notebook)
        notebook.add(self.frame, text="Asistente")

        self.question = tk.StringVar()
        self.status = tk.StringVar(value="")
        self._request_id = 0
        self._build()

    def _build(self):
        tab = self.frame

        if not self.app.assistant.configured:
            ttk.Label(tab, text="Defina GEMINI_API_KEY para usar el asistente.", foreground="#b45309")\
                .pack(anchor="w", padx=10, pady=(10, 0))

        self.history = tk.Text(tab, wrap="word", height=20, state="disabled")
        self.history.pack(fill="both", expand=True, padx=10, pady=10)

        sugg = ttk.Frame(tab)
        sugg.pack(fill="x", padx=10)
        for text in SUGGESTIONS:
            ttk.Button(sugg, text=text, command=lambda t=text: self._ask(t)).pack(side="left", padx=(0, 6))

        row = ttk.Frame(tab)
        row.pack(fill="x", padx=10, pady=10)
        entry = ttk.Entry(row, textvariable=self.question)
        entry.pack(side="left", fill="x", expand=True)
        entry.bind("<Return>", lambda _e: self._ask(self.question.get()))
        ttk.Button(row, text="Preguntar", style="Big.TButton", command=lambda: self._ask(self.question.get()))\
            .pack(side="left", padx=10)
        ttk.Label(row, textvariable=self.status).pack(side="left")

    def _append(self, who: str, text: str):
        self.history.configure(state="normal")
        self.history.insert("end", f"{who}: {text}\n\n")
        self.history.configure(state="disabled")
        self.history.see("end")

    def _ask(self, question: str):
        question = (question or "").strip()
        if not question:
            return
        self.question.set("")
        self._append("Tú", question)
        self.status.set("Pensando…")

        self._request_id += 1
        request_id = self._request_id

        def worker():
            answer = self.app.assistant.ask(question)
            self.app.after(0, lambda: self._on_answer(request_id, answer))

        threading.Thread(target=worker, daemon=True, name="assistant-ask").start()

    def _on_answer(self, request_id: int, answer: str):
        # a newer question was asked meanwhile
        if request_id != self._request_id:
            return
        self.status.set("")
        self._append("Asistente", answer)

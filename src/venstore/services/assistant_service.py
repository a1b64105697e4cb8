from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

import requests

from venstore.config import DEFAULT_ASSISTANT_MODEL

log = logging.getLogger("venstore.assistant")

API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

NOT_CONFIGURED = "API Key no configurada. Por favor verifica las variables de entorno."
REQUEST_FAILED = "Ocurrió un error al consultar a la IA. Inténtalo de nuevo."
NO_ANSWER = "No se pudo generar una respuesta."

SNAPSHOT_SALES = 50

PROMPT = """Eres un asistente experto en negocios para una tienda minorista en Venezuela.

Datos actuales del negocio:
- Tasa de Cambio actual: {rate} BsF/USD
- Inventario (Resumen): {inventory}
- Últimas {n} Ventas: {sales}

Responde a la siguiente pregunta del usuario basándote en estos datos.
Sé conciso, profesional y útil. Si te piden sugerencias, sé estratégico.

Pregunta: {question}
"""


class AssistantService:
    """Free-text questions about the store, answered by the Gemini REST API."""

    def __init__(self, sales_service, inventory_service, rate_service, api_key: Optional[str] = None,
                 model: str = DEFAULT_ASSISTANT_MODEL):
        self.sales = sales_service
        self.inventory = inventory_service
        self.rates = rate_service
        self.api_key = (api_key or "").strip() or None
        self.model = model or DEFAULT_ASSISTANT_MODEL

    @property
    def configured(self) -> bool:
        return self.api_key is not None

    def snapshot(self) -> dict:
        sales = self.sales.recent_sales(SNAPSHOT_SALES)
        return {
            "rate": self.rates.get_rate(),
            "inventory": [
                {"name": p.name, "stock": p.stock, "category": p.category.value}
                for p in self.inventory.list_products()
            ],
            "sales": [
                {
                    "date": s.timestamp[:10],
                    "totalUSD": round(s.total_usd, 2),
                    "method": s.payment_method.value,
                    "items": ", ".join(f"{it.quantity:g}x {it.name}" for it in s.items),
                }
                for s in sales
            ],
        }

    def build_prompt(self, question: str, snap: Optional[dict] = None) -> str:
        snap = snap if snap is not None else self.snapshot()
        return PROMPT.format(
            rate=snap["rate"],
            inventory=json.dumps(snap["inventory"], ensure_ascii=False),
            n=SNAPSHOT_SALES,
            sales=json.dumps(snap["sales"], ensure_ascii=False),
            question=question,
        )

    def _post(self, url: str, payload: dict) -> dict:
        r = requests.post(url, params={"key": self.api_key}, json=payload, timeout=30)
        r.raise_for_status()
        return r.json()

    @staticmethod
    def _extract_text(data: dict) -> str:
        parts = []
        for cand in data.get("candidates") or []:
            content = cand.get("content") or {}
            for part in content.get("parts") or []:
                text = part.get("text")
                if text:
                    parts.append(text)
            if parts:
                break
        return "".join(parts).strip()

    def ask(self, question: str) -> str:
        q = (question or "").strip()
        if not q:
            return ""
        if not self.configured:
            return NOT_CONFIGURED

        try:
            payload = {"contents": [{"parts": [{"text": self.build_prompt(q)}]}]}
            data = self._post(API_URL.format(model=self.model), payload)
            text = self._extract_text(data)
        except (requests.RequestException, sqlite3.Error, ValueError, KeyError, TypeError, AttributeError) as e:
            log.warning("assistant_request_failed model=%s error=%s", self.model, e)
            return REQUEST_FAILED

        log.info("assistant_answered model=%s question_len=%s answer_len=%s", self.model, len(q), len(text))
        return text or NO_ANSWER

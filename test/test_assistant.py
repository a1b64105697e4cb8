import sqlite3
from pathlib import Path

import requests
from conftest import add_product, make_store

from venstore.domain.models import Currency, PaymentMethod
from venstore.services.assistant_service import (
    API_URL,
    NO_ANSWER,
    NOT_CONFIGURED,
    REQUEST_FAILED,
    SNAPSHOT_SALES,
)


def test_not_configured_returns_canned_text(tmp_path: Path):
    store = make_store(tmp_path)
    assert not store.assistant.configured
    assert store.assistant.ask("¿Qué vendí hoy?") == NOT_CONFIGURED


def test_blank_question_returns_empty(tmp_path: Path):
    store = make_store(tmp_path, assistant_api_key="k")
    assert store.assistant.ask("   ") == ""


def test_http_error_returns_canned_text(tmp_path: Path):
    store = make_store(tmp_path, assistant_api_key="k")

    def boom(url, payload):
        raise requests.ConnectionError("offline")

    store.assistant._post = boom
    assert store.assistant.ask("hola") == REQUEST_FAILED


def test_malformed_response_returns_canned_text(tmp_path: Path):
    store = make_store(tmp_path, assistant_api_key="k")
    store.assistant._post = lambda url, payload: {"candidates": "nope"}
    assert store.assistant.ask("hola") == REQUEST_FAILED


def test_empty_answer_returns_no_answer(tmp_path: Path):
    store = make_store(tmp_path, assistant_api_key="k")
    store.assistant._post = lambda url, payload: {"candidates": []}
    assert store.assistant.ask("hola") == NO_ANSWER


def test_answer_text_and_request_shape(tmp_path: Path):
    store = make_store(tmp_path, assistant_api_key="k", assistant_model="gemini-test")
    add_product(store, name="Harina PAN", stock=7)
    seen = {}

    def fake_post(url, payload):
        seen["url"] = url
        seen["prompt"] = payload["contents"][0]["parts"][0]["text"]
        return {"candidates": [{"content": {"parts": [{"text": "Repón "}, {"text": "harina."}]}}]}

    store.assistant._post = fake_post

    assert store.assistant.ask("¿Qué repongo?") == "Repón harina."
    assert seen["url"] == API_URL.format(model="gemini-test")
    assert "Harina PAN" in seen["prompt"]
    assert "¿Qué repongo?" in seen["prompt"]
    assert "36.5" in seen["prompt"]


def test_snapshot_uses_only_the_latest_sales(tmp_path: Path):
    store = make_store(tmp_path)
    add_product(store, name="Queso", stock=3)
    for i in range(SNAPSHOT_SALES + 5):
        store.cart.add_manual_item(f"Venta {i}", 1, Currency.USD)
        store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD)

    snap = store.assistant.snapshot()

    assert len(snap["sales"]) == SNAPSHOT_SALES
    assert snap["sales"][0]["items"] == "1x Venta 5"
    assert snap["sales"][-1]["items"] == f"1x Venta {SNAPSHOT_SALES + 4}"
    assert snap["inventory"] == [{"name": "Queso", "stock": 3.0, "category": "Otros"}]
    assert snap["rate"] == 36.5


def test_database_failure_returns_canned_text(tmp_path: Path):
    store = make_store(tmp_path, assistant_api_key="k")

    def locked(limit):
        raise sqlite3.OperationalError("database is locked")

    store.assistant.sales.recent_sales = locked
    store.assistant._post = lambda url, payload: {"candidates": []}
    assert store.assistant.ask("hola") == REQUEST_FAILED

from pathlib import Path

import pytest
from conftest import add_product, make_store

from venstore.domain.errors import NotFoundError, ValidationError
from venstore.domain.models import CartItem, Currency, ProductCategory
from venstore.services.inventory_service import catalog_quantities, price_from_margin


def test_create_product_normalizes_fields(tmp_path: Path):
    store = make_store(tmp_path)
    p = store.inventory.create_product(
        name="  Queso blanco ", price="4.5", currency=Currency.USD, category=ProductCategory.CHARCUTERIA,
        unit="", units_per_case="12", stock="3.5", barcode=" 7591234 ", cost="3", profit_margin="50",
    )
    saved = store.inventory.get_product(p.id)
    assert saved.name == "Queso blanco"
    assert saved.price == 4.5
    assert saved.unit == "Unidad"
    assert saved.units_per_case == 12
    assert saved.stock == 3.5
    assert saved.barcode == "7591234"
    assert saved.cost == 3.0 and saved.profit_margin == 50.0
    assert saved.category is ProductCategory.CHARCUTERIA


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"name": "", "price": 1}, "Nombre y precio son obligatorios"),
        ({"name": "Arroz", "price": None}, "Nombre y precio son obligatorios"),
        ({"name": "Arroz", "price": 0}, "El precio debe ser mayor que 0"),
        ({"name": "Arroz", "price": -2}, "El precio debe ser mayor que 0"),
        ({"name": "Arroz", "price": "x"}, "El campo Precio debe ser un número"),
        ({"name": "Arroz", "price": 1, "units_per_case": 0}, "Las unidades por caja"),
        ({"name": "Arroz", "price": 1, "cost": -1}, "El costo no puede ser negativo"),
    ],
)
def test_create_product_validation(tmp_path: Path, kwargs, message):
    store = make_store(tmp_path)
    with pytest.raises(ValidationError, match=message):
        store.inventory.create_product(**kwargs)
    assert store.inventory.list_products() == []


def test_upsert_replaces_every_field(tmp_path: Path):
    from dataclasses import replace

    store = make_store(tmp_path)
    p = add_product(store, stock=5)
    store.inventory.upsert(replace(p, name="Harina PAN 1kg", price=2.2, currency=Currency.BSF, stock=8))

    saved = store.inventory.get_product(p.id)
    assert (saved.name, saved.price, saved.currency, saved.stock) == ("Harina PAN 1kg", 2.2, Currency.BSF, 8.0)
    assert len(store.inventory.list_products()) == 1


def test_search_by_name_barcode_and_category(tmp_path: Path):
    store = make_store(tmp_path)
    add_product(store, name="Harina PAN", category=ProductCategory.VIVERES, barcode="7591001")
    add_product(store, name="Jabón azul", category=ProductCategory.LIMPIEZA)
    add_product(store, name="harina de trigo", category=ProductCategory.VIVERES)

    assert [p.name for p in store.inventory.search("HARINA")] == ["harina de trigo", "Harina PAN"]
    assert [p.name for p in store.inventory.search("7591001")] == ["Harina PAN"]
    assert [p.name for p in store.inventory.search("", ProductCategory.LIMPIEZA)] == ["Jabón azul"]
    assert store.inventory.search("zzz") == []


def test_find_by_barcode(tmp_path: Path):
    store = make_store(tmp_path)
    p = add_product(store, barcode="123456")

    assert store.inventory.find_by_barcode("123456").id == p.id
    with pytest.raises(NotFoundError):
        store.inventory.find_by_barcode("999")
    with pytest.raises(NotFoundError):
        store.inventory.find_by_barcode("  ")


def test_adjust_stock_allows_negative_by_default(tmp_path: Path):
    store = make_store(tmp_path)
    p = add_product(store, stock=2)

    assert store.inventory.adjust_stock(p.id, 5) == 7
    assert store.inventory.adjust_stock(p.id, "-10") == -3
    assert store.inventory.get_product(p.id).stock == -3


def test_adjust_stock_strict_mode_rejects_negative(tmp_path: Path):
    store = make_store(tmp_path, strict_stock=True)
    p = add_product(store, stock=2)

    with pytest.raises(ValidationError, match="por debajo de cero"):
        store.inventory.adjust_stock(p.id, -3)
    assert store.inventory.get_product(p.id).stock == 2
    assert store.inventory.adjust_stock(p.id, -2) == 0


def test_adjust_stock_unknown_product(tmp_path: Path):
    store = make_store(tmp_path)
    with pytest.raises(NotFoundError):
        store.inventory.adjust_stock("missing", 1)


def test_remove_product(tmp_path: Path):
    store = make_store(tmp_path)
    p = add_product(store)
    store.inventory.remove(p.id)

    with pytest.raises(NotFoundError):
        store.inventory.get_product(p.id)
    with pytest.raises(NotFoundError):
        store.inventory.remove(p.id)


def test_price_from_margin():
    assert price_from_margin(10, 30) == 13.0
    assert price_from_margin(0, 30) is None
    assert price_from_margin(10, 0) is None


def test_catalog_quantities_skip_manual_lines():
    items = [
        CartItem(product_id="a", name="A", quantity=2, price=1, currency=Currency.USD),
        CartItem(product_id=None, name="M", quantity=1, price=1, currency=Currency.USD, is_manual=True),
        CartItem(product_id="a", name="A", quantity=1.5, price=1, currency=Currency.USD),
    ]
    assert catalog_quantities(items) == {"a": 3.5}

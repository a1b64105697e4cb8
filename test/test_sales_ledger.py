from pathlib import Path

import pytest
from conftest import add_product, make_store

from venstore.domain.errors import InsufficientStockError, NotFoundError, ValidationError
from venstore.domain.models import Currency, PaymentMethod
from venstore.domain.money import to_bsf, to_usd


def _scenario_a(tmp_path: Path):
    store = make_store(tmp_path)
    store.rates.set_rate(36.5)
    p = add_product(store, price=2.0, stock=10)
    store.cart.add_catalog_item(p.id, 3)
    store.cart.add_catalog_item(p.id, 4)
    sale = store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD)
    return store, p, sale


def _assert_totals_match_rate(sale):
    assert sale.total_usd == pytest.approx(sum(to_usd(it.amount, it.currency, sale.rate_at_sale) for it in sale.items))
    assert sale.total_bsf == pytest.approx(sum(to_bsf(it.amount, it.currency, sale.rate_at_sale) for it in sale.items))


def test_commit_freezes_totals_and_reserves_stock(tmp_path: Path):
    store, p, sale = _scenario_a(tmp_path)

    assert sale.total_usd == pytest.approx(14.0)
    assert sale.total_bsf == pytest.approx(511.0)
    assert sale.rate_at_sale == 36.5
    assert store.inventory.get_product(p.id).stock == 3
    assert store.cart.is_empty
    assert store.sales.get_sale(sale.id) == sale


def test_oversell_after_commit_fails_and_cart_is_unchanged(tmp_path: Path):
    store, p, _sale = _scenario_a(tmp_path)

    with pytest.raises(InsufficientStockError):
        store.cart.add_catalog_item(p.id, 9)
    assert store.cart.is_empty
    assert store.inventory.get_product(p.id).stock == 3


def test_retract_restores_stock_and_removes_sale(tmp_path: Path):
    store, p, sale = _scenario_a(tmp_path)

    store.sales.retract(sale.id)

    assert store.inventory.get_product(p.id).stock == 10
    assert store.sales.list_sales() == []
    with pytest.raises(NotFoundError):
        store.sales.retract(sale.id)


def test_amend_removing_only_line_zeroes_totals_and_restores_stock(tmp_path: Path):
    store, p, sale = _scenario_a(tmp_path)

    updated = store.sales.amend(sale.id, lambda d: d.remove_item(0))

    assert updated.items == ()
    assert (updated.total_usd, updated.total_bsf) == (0, 0)
    assert store.inventory.get_product(p.id).stock == 10
    assert store.sales.get_sale(sale.id).total_usd == 0


def test_amend_keeps_the_rate_of_the_sale(tmp_path: Path):
    store = make_store(tmp_path)
    store.rates.set_rate(36.5)
    a = add_product(store, name="A", price=1.0, stock=5)
    b = add_product(store, name="B", price=73.0, currency=Currency.BSF, stock=5)
    store.cart.add_catalog_item(a.id, 2)
    store.cart.add_catalog_item(b.id, 1)
    store.cart.add_manual_item("Hielo", 0.5, Currency.USD)
    sale = store.sales.commit(store.cart, PaymentMethod.PUNTO_VENTA)
    _assert_totals_match_rate(sale)

    store.rates.set_rate(50.0)
    draft = store.sales.draft(sale.id)
    draft.remove_item(1)
    updated = store.sales.save_draft(draft)

    assert updated.rate_at_sale == 36.5
    assert [it.name for it in updated.items] == ["A", "Hielo"]
    assert updated.total_usd == pytest.approx(2.5)
    _assert_totals_match_rate(updated)
    _assert_totals_match_rate(store.sales.get_sale(sale.id))
    assert store.inventory.get_product(b.id).stock == 5
    assert store.inventory.get_product(a.id).stock == 3


def test_amend_edits_payment_fields(tmp_path: Path):
    store, _p, sale = _scenario_a(tmp_path)

    def to_credit(draft):
        draft.payment_method = PaymentMethod.CREDITO
        draft.customer_name = "Ana"

    updated = store.sales.amend(sale.id, to_credit)
    assert updated.is_open_debt and updated.customer_name == "Ana"

    def bad(draft):
        draft.customer_name = ""

    with pytest.raises(ValidationError):
        store.sales.amend(sale.id, bad)
    assert store.sales.get_sale(sale.id).customer_name == "Ana"


def test_amend_out_of_range_line(tmp_path: Path):
    store, _p, sale = _scenario_a(tmp_path)
    with pytest.raises(ValidationError):
        store.sales.amend(sale.id, lambda d: d.remove_item(5))


def test_second_save_of_the_same_sale_is_refused_and_stock_is_restored_once(tmp_path: Path):
    store = make_store(tmp_path)
    a = add_product(store, name="A", price=1.0, stock=10)
    b = add_product(store, name="B", price=1.0, stock=10)
    store.cart.add_catalog_item(a.id, 3)
    store.cart.add_catalog_item(b.id, 2)
    sale = store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD)

    first = store.sales.draft(sale.id)
    second = store.sales.draft(sale.id)
    first.remove_item(0)
    second.remove_item(0)

    store.sales.save_draft(first)
    with pytest.raises(ValidationError, match="La venta cambió"):
        store.sales.save_draft(second)

    assert store.inventory.get_product(a.id).stock == 10
    assert store.inventory.get_product(b.id).stock == 8
    assert [it.name for it in store.sales.get_sale(sale.id).items] == ["B"]


def test_draft_of_a_retracted_sale_can_not_be_saved(tmp_path: Path):
    store, p, sale = _scenario_a(tmp_path)
    draft = store.sales.draft(sale.id)
    draft.remove_item(0)
    store.sales.retract(sale.id)

    with pytest.raises(NotFoundError):
        store.sales.save_draft(draft)
    assert store.inventory.get_product(p.id).stock == 10


def test_declined_confirmation_changes_nothing(tmp_path: Path):
    store, p, sale = _scenario_a(tmp_path)
    no = lambda _msg: False  # noqa: E731

    assert store.sales.undo_last(confirm=no) is None
    assert store.sales.retract(sale.id, confirm=no) is None
    assert store.sales.amend(sale.id, lambda d: d.remove_item(0), confirm=no) is None

    assert store.sales.get_sale(sale.id) == sale
    assert store.inventory.get_product(p.id).stock == 3


def test_commit_then_undo_round_trip(tmp_path: Path):
    store = make_store(tmp_path)
    a = add_product(store, name="A", stock=4)
    b = add_product(store, name="B", stock=9.5)
    first = store.cart.add_catalog_item(a.id, 1)
    store.sales.commit(store.cart, PaymentMethod.EFECTIVO_BSF)
    assert first.product_id == a.id

    stock_before = {p.id: p.stock for p in store.inventory.list_products()}
    ledger_before = store.sales.list_sales()

    store.cart.add_catalog_item(a.id, 3)
    store.cart.add_catalog_item(b.id, 2.5)
    sale = store.sales.commit(store.cart, PaymentMethod.PAGO_MOVIL, payment_reference="0412-5555")
    undone = store.sales.undo_last(confirm=lambda _msg: True)

    assert undone.id == sale.id
    assert {p.id: p.stock for p in store.inventory.list_products()} == stock_before
    assert store.sales.list_sales() == ledger_before


def test_undo_on_empty_ledger(tmp_path: Path):
    store = make_store(tmp_path)
    assert store.sales.undo_last() is None


def test_undo_only_targets_latest_sale(tmp_path: Path):
    store = make_store(tmp_path)
    p = add_product(store, stock=10)
    store.cart.add_catalog_item(p.id, 1)
    first = store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD)
    store.cart.add_catalog_item(p.id, 2)
    store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD)

    store.sales.undo_last()
    store.sales.undo_last()
    assert store.sales.list_sales() == []
    assert store.inventory.get_product(p.id).stock == 10

    store.cart.add_catalog_item(p.id, 1)
    again = store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD)
    assert again.id != first.id


def test_restoring_a_deleted_product_is_a_silent_no_op(tmp_path: Path):
    store, p, sale = _scenario_a(tmp_path)
    store.inventory.remove(p.id)

    store.sales.retract(sale.id)

    assert store.sales.list_sales() == []
    with pytest.raises(NotFoundError):
        store.inventory.get_product(p.id)


def test_sale_keeps_snapshot_of_deleted_product(tmp_path: Path):
    store, p, sale = _scenario_a(tmp_path)
    store.inventory.remove(p.id)

    kept = store.sales.get_sale(sale.id)
    assert kept.items[0].name == "Harina PAN"
    assert kept.items[0].product_id == p.id
    assert kept.items[0].price == 2.0


def test_empty_cart_cannot_be_committed(tmp_path: Path):
    store = make_store(tmp_path)
    with pytest.raises(ValidationError, match="El carrito está vacío"):
        store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD)


@pytest.mark.parametrize(
    "method, customer, reference",
    [
        (PaymentMethod.CREDITO, None, None),
        (PaymentMethod.CREDITO, "   ", None),
        (PaymentMethod.PAGO_MOVIL, None, None),
        (PaymentMethod.PAGO_MOVIL, None, "  "),
        ("BITCOIN", None, None),
    ],
)
def test_payment_fields_are_validated_before_any_stock_moves(tmp_path: Path, method, customer, reference):
    store = make_store(tmp_path)
    p = add_product(store, stock=5)
    store.cart.add_catalog_item(p.id, 2)

    with pytest.raises(ValidationError):
        store.sales.commit(store.cart, method, customer_name=customer, payment_reference=reference)

    assert store.inventory.get_product(p.id).stock == 5
    assert store.sales.list_sales() == []
    assert len(store.cart) == 1


def test_unused_payment_fields_are_dropped(tmp_path: Path):
    store = make_store(tmp_path)
    store.cart.add_manual_item("Hielo", 1, Currency.USD)
    sale = store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD, customer_name="Ana", payment_reference="123")

    assert sale.customer_name is None
    assert sale.payment_reference is None


def test_commit_is_atomic_when_stock_changed_after_adding(tmp_path: Path):
    store = make_store(tmp_path)
    a = add_product(store, name="A", stock=5)
    b = add_product(store, name="B", stock=5)
    store.cart.add_catalog_item(a.id, 2)
    store.cart.add_catalog_item(b.id, 3)
    store.inventory.adjust_stock(b.id, -4)

    with pytest.raises(InsufficientStockError, match="B"):
        store.sales.commit(store.cart, PaymentMethod.EFECTIVO_USD)

    assert store.inventory.get_product(a.id).stock == 5
    assert store.inventory.get_product(b.id).stock == 1
    assert store.sales.list_sales() == []
    assert len(store.cart) == 2


def test_repository_applies_all_reservations_or_none(tmp_path: Path):
    from venstore.domain.models import CartItem, Sale

    store = make_store(tmp_path)
    a = add_product(store, name="A", stock=5)
    b = add_product(store, name="B", stock=1)
    items = (
        CartItem(product_id=a.id, name="A", quantity=2, price=2.0, currency=Currency.USD),
        CartItem(product_id=b.id, name="B", quantity=3, price=2.0, currency=Currency.USD),
    )
    sale = Sale(
        id="s-1", timestamp="2026-10-14 10:00:00", items=items, total_usd=10.0, total_bsf=365.0,
        rate_at_sale=36.5, payment_method=PaymentMethod.EFECTIVO_USD,
    )

    with pytest.raises(InsufficientStockError):
        store.repo.create_sale(sale, {a.id: 2, b.id: 3})

    assert store.inventory.get_product(a.id).stock == 5
    assert store.repo.get_sale("s-1") is None


def test_stored_sales_satisfy_payment_invariants(tmp_path: Path):
    store = make_store(tmp_path)
    for method, customer, ref in (
        (PaymentMethod.CREDITO, "Ana", None),
        (PaymentMethod.PAGO_MOVIL, None, "9981"),
        (PaymentMethod.EFECTIVO_BSF, None, None),
    ):
        store.cart.add_manual_item("Hielo", 1, Currency.USD)
        store.sales.commit(store.cart, method, customer_name=customer, payment_reference=ref)

    for s in store.sales.list_sales():
        if s.payment_method is PaymentMethod.CREDITO:
            assert s.customer_name
        if s.payment_method is PaymentMethod.PAGO_MOVIL:
            assert s.payment_reference
        _assert_totals_match_rate(s)


def test_database_rejects_credit_sale_without_customer(tmp_path: Path):
    import sqlite3

    from venstore.domain.models import Sale

    store = make_store(tmp_path)
    sale = Sale(
        id="s-2", timestamp="2026-10-14 10:00:00", items=(), total_usd=0.0, total_bsf=0.0,
        rate_at_sale=36.5, payment_method=PaymentMethod.CREDITO, customer_name="",
    )
    with pytest.raises(sqlite3.IntegrityError):
        store.repo.create_sale(sale, {})

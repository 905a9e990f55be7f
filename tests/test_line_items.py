from decimal import Decimal

import pytest

from storefront_cart.core.errors import InvalidQuantity, ItemNotFound
from storefront_cart.database.line_items import LineItemStore, check_quantity

from .conftest import make_item


@pytest.fixture
def store():
    ids = iter(f"line-{n}" for n in range(1, 100))
    return LineItemStore(id_factory=lambda: next(ids))


def test_add_appends_new_line(store):
    item_id = store.add(make_item("whey-1kg", price="10.00", quantity=2))

    assert item_id == "line-1"
    assert len(store) == 1
    line = store.get(item_id)
    assert line.product_id == "whey-1kg"
    assert line.quantity == 2
    assert line.price == Decimal("10.00")


def test_add_merges_same_product_and_variant(store):
    first = store.add(make_item("whey-1kg", quantity=2, flavor="chocolate"))
    second = store.add(make_item("whey-1kg", quantity=1, flavor="chocolate"))

    assert first == second
    assert len(store) == 1
    assert store.get(first).quantity == 3


def test_add_keeps_different_variants_apart(store):
    chocolate = store.add(make_item("whey-1kg", flavor="chocolate"))
    vanilla = store.add(make_item("whey-1kg", flavor="vanilla"))
    plain = store.add(make_item("whey-1kg"))

    assert len({chocolate, vanilla, plain}) == 3
    assert [item.id for item in store] == [chocolate, vanilla, plain]


@pytest.mark.parametrize("quantity", [0, -1])
def test_add_rejects_non_positive_quantity(store, quantity):
    with pytest.raises(InvalidQuantity):
        store.add(make_item(quantity=quantity))
    assert len(store) == 0


def test_remove_is_idempotent(store):
    item_id = store.add(make_item())

    assert store.remove(item_id) is True
    assert store.remove(item_id) is False
    assert store.remove("never-existed") is False
    assert len(store) == 0


def test_set_quantity_updates_line(store):
    item_id = store.add(make_item(quantity=1))
    store.set_quantity(item_id, 5)
    assert store.get(item_id).quantity == 5


def test_set_quantity_zero_removes_line(store):
    item_id = store.add(make_item(quantity=4))
    store.set_quantity(item_id, 0)
    assert item_id not in store


def test_set_quantity_negative_fails_and_keeps_line(store):
    item_id = store.add(make_item(quantity=4))
    with pytest.raises(InvalidQuantity):
        store.set_quantity(item_id, -2)
    assert store.get(item_id).quantity == 4


def test_set_quantity_unknown_item(store):
    with pytest.raises(ItemNotFound):
        store.set_quantity("missing", 2)


def test_clear_empties_store(store):
    store.add(make_item("a"))
    store.add(make_item("b"))
    store.clear()
    assert len(store) == 0


def test_store_works_on_copies(store):
    item_id = store.add(make_item(quantity=1))
    snapshot = store.items

    store.set_quantity(item_id, 9)

    assert snapshot[0].quantity == 1
    copy = LineItemStore(snapshot)
    copy.set_quantity(item_id, 7)
    assert snapshot[0].quantity == 1


@pytest.mark.parametrize("value", [1.5, "2", True, None])
def test_check_quantity_rejects_non_integers(value):
    with pytest.raises(InvalidQuantity):
        check_quantity(value)

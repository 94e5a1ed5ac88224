from decimal import Decimal

import pytest

from api.tableorder.domain import ConflictError, NotFoundError
from api.tableorder.models import Cart, CartItem, Menu


def _menu(menu_id: int, price: str) -> Menu:
    return Menu(id=menu_id, name=f"menu-{menu_id}", price=Decimal(price), is_available=True)


def _cart_with_ids() -> Cart:
    cart = Cart(id=1, table_id=1, items=[])
    cart.add_item(_menu(1, "4500.00"), 2)
    cart.add_item(_menu(2, "3000.00"), 1)
    for n, item in enumerate(cart.items, start=10):
        item.id = n
    return cart


def test_merge_keeps_one_line_per_menu():
    cart = Cart(table_id=1, items=[])
    americano = _menu(1, "4500.00")
    cart.add_item(americano, 2)
    cart.add_item(americano, 1)
    assert len(cart.items) == 1
    assert cart.items[0].quantity == 3
    assert cart.total == Decimal("13500.00")
    assert cart.item_count == 3


def test_notes_only_overwritten_when_given():
    cart = Cart(table_id=1, items=[])
    menu = _menu(1, "1000")
    cart.add_item(menu, 1, notes="hot")
    cart.add_item(menu, 1)
    assert cart.items[0].notes == "hot"


def test_line_keeps_unit_price_when_menu_changes():
    cart = Cart(table_id=1, items=[])
    menu = _menu(1, "4500.00")
    cart.add_item(menu, 1)
    menu.price = Decimal("9999.00")
    cart.add_item(menu, 1)
    assert cart.items[0].unit_price == Decimal("4500.00")
    assert cart.total == Decimal("9000.00")


@pytest.mark.parametrize("quantity", [0, -3])
def test_quantity_below_one(quantity):
    cart = Cart(table_id=1, items=[])
    with pytest.raises(ConflictError):
        cart.add_item(_menu(1, "10"), quantity)
    assert cart.is_empty


def test_update_and_remove_by_id():
    cart = _cart_with_ids()
    cart.update_item_quantity(10, 5)
    assert cart.total == Decimal("25500.00")
    cart.remove_item(11)
    assert [i.id for i in cart.items] == [10]
    with pytest.raises(NotFoundError):
        cart.remove_item(11)


def test_clear_empties_cart():
    cart = _cart_with_ids()
    cart.clear()
    assert cart.is_empty
    assert cart.total == Decimal("0.00")


def test_subtotal_is_price_times_quantity():
    item = CartItem(unit_price=Decimal("2.50"), quantity=4)
    item.recalculate()
    assert item.subtotal == Decimal("10.00")

"""Tests for cart pricing and the cart operations on the store."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pos_terminal.cart import (
    CartStore,
    cart_item_count,
    cart_subtotal,
    checkout_total,
    line_total,
    parse_quantity,
    resize_price,
)
from pos_terminal.data import CATEGORIES, EXTRA_INGREDIENTS, PRODUCTS
from pos_terminal.models import CartLine, ExtraLine


def _make_store() -> CartStore:
    store = CartStore()
    store.load_catalog(PRODUCTS, CATEGORIES, EXTRA_INGREDIENTS)
    return store


def _product(name):
    return next(product for product in PRODUCTS if product.name == name)


class TestPricing:

    def test_extras_are_charged_per_unit(self):
        line = CartLine(
            product_id=1,
            name="Margherita Pizza",
            unit_price=Decimal("12.50"),
            category="pizza",
            quantity=2,
            extras={"cheese": ExtraLine("cheese", "Extra Cheese", Decimal("2.00"), 1)},
        )
        assert line_total(line) == Decimal("29.00")

    def test_subtotal_and_count(self):
        lines = [
            CartLine(1, "A", Decimal("2.50"), "beverages", quantity=3),
            CartLine(2, "B", Decimal("6.00"), "dessert", quantity=1),
        ]
        assert cart_subtotal(lines) == Decimal("13.50")
        assert cart_item_count(lines) == 4

    def test_checkout_total_adds_tax_and_rounds(self):
        assert checkout_total(Decimal("10.00")) == Decimal("12.10")
        assert checkout_total(Decimal("2.50")) == Decimal("3.03")

    @pytest.mark.parametrize("raw, expected", [("3", 3), ("0", 1), ("-4", 1), ("abc", 1), ("", 1), (None, 1), (" 12 ", 12)])
    def test_parse_quantity(self, raw, expected):
        assert parse_quantity(raw) == expected

    def test_resize_round_trip_drift(self):
        price = Decimal("12.50")
        for _ in range(5):
            up = resize_price(price, "30cm", "40cm")
            down = resize_price(up, "40cm", "30cm")
            assert abs(down - price) <= Decimal("0.01")
            price = down

    def test_resize_same_size_is_identity(self):
        assert resize_price(Decimal("14.00"), "40cm", "40cm") == Decimal("14.00")


class TestAddAndRemove:

    def test_add_new_product(self):
        store = _make_store()
        line = store.add_to_cart(_product("Coca Cola"))
        assert line.quantity == 1
        assert line.size is None
        assert store.get_cart_item_count() == 1

    def test_pizza_starts_small(self):
        store = _make_store()
        line = store.add_to_cart(_product("Margherita Pizza"))
        assert line.size == "30cm"

    def test_adding_again_increments(self):
        store = _make_store()
        store.add_to_cart(_product("Tiramisu"))
        store.add_to_cart(_product("Tiramisu"))
        lines = store.cart_lines()
        assert len(lines) == 1
        assert lines[0].quantity == 2

    def test_remove_by_product(self):
        store = _make_store()
        store.add_to_cart(_product("Tiramisu"))
        store.add_to_cart(_product("Coca Cola"))
        store.remove_from_cart(_product("Tiramisu").product_id)
        assert [line.name for line in store.cart_lines()] == ["Coca Cola"]

    def test_remove_line_by_index(self):
        store = _make_store()
        store.add_to_cart(_product("Tiramisu"))
        removed = store.remove_line("0")
        assert removed.name == "Tiramisu"
        assert store.cart_lines() == []

    def test_remove_line_out_of_range(self):
        store = _make_store()
        assert store.remove_line(4) is None

    def test_clear_cart(self):
        store = _make_store()
        store.add_to_cart(_product("Tiramisu"))
        store.clear_cart()
        assert store.get_cart_total() == Decimal("0")


class TestQuantities:

    def test_decrease_stops_at_one(self):
        store = _make_store()
        product = _product("Caesar Salad")
        store.add_to_cart(product)
        assert store.decrease_cart_quantity(product.product_id) is False
        assert store.cart_lines()[0].quantity == 1

    def test_increase_then_decrease(self):
        store = _make_store()
        product = _product("Caesar Salad")
        store.add_to_cart(product)
        store.increase_cart_quantity(product.product_id)
        store.increase_cart_quantity(product.product_id)
        store.decrease_cart_quantity(product.product_id)
        assert store.cart_lines()[0].quantity == 2

    def test_update_quantity_clamps(self):
        store = _make_store()
        product = _product("Caesar Salad")
        store.add_to_cart(product)
        store.update_cart_quantity(product.product_id, "0")
        assert store.cart_lines()[0].quantity == 1
        store.update_cart_quantity(product.product_id, "9")
        assert store.cart_lines()[0].quantity == 9

    def test_set_line_quantity_skips_unchanged(self):
        store = _make_store()
        store.add_to_cart(_product("Caesar Salad"))
        before = store.history_size
        assert store.set_line_quantity(0, "1") is False
        assert store.history_size == before
        assert store.set_line_quantity(0, "garbage") is False
        assert store.set_line_quantity(0, "5") is True
        assert store.cart_lines()[0].quantity == 5


class TestSizes:

    def test_size_up_raises_price(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        assert store.select_size(0, "40cm") is True
        line = store.cart_lines()[0]
        assert line.size == "40cm"
        assert line.unit_price == Decimal("15.00")

    def test_size_down_restores_price(self):
        store = _make_store()
        store.add_to_cart(_product("Pepperoni Pizza"))
        store.select_size(0, "40cm")
        store.select_size(0, "30cm")
        assert store.cart_lines()[0].unit_price == Decimal("14.00")

    def test_unsized_category_rejected(self):
        store = _make_store()
        store.add_to_cart(_product("Coca Cola"))
        assert store.select_size(0, "40cm") is False
        line = store.cart_lines()[0]
        assert line.size is None
        assert line.unit_price == Decimal("2.50")

    def test_unknown_size_rejected(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        assert store.select_size(0, "50cm") is False
        assert store.cart_lines()[0].size == "30cm"


class TestExtras:

    def test_increase_creates_extra(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        store.increase_extra(0, "cheese")
        store.increase_extra(0, "cheese")
        extra = store.cart_lines()[0].extras["cheese"]
        assert extra.quantity == 2
        assert extra.unit_price == Decimal("2.00")

    def test_decrease_to_zero_removes_extra(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        store.increase_extra(0, "ham")
        store.decrease_extra(0, "ham")
        assert store.cart_lines()[0].extras == {}

    def test_decrease_absent_extra_is_noop(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        assert store.decrease_extra(0, "ham") is False

    def test_unknown_ingredient(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        assert store.increase_extra(0, "gold-leaf") is False

    def test_no_zero_quantity_extras_survive(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        for ingredient in ("cheese", "olives", "basil"):
            store.increase_extra(0, ingredient)
        for ingredient in ("cheese", "olives"):
            store.decrease_extra(0, ingredient)
        extras = store.cart_lines()[0].extras
        assert list(extras) == ["basil"]
        assert all(extra.quantity > 0 for extra in extras.values())

    def test_toggle_extras_flag(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        store.toggle_extras(0)
        assert store.cart_lines()[0].extras_expanded is True
        store.toggle_extras(0)
        assert store.cart_lines()[0].extras_expanded is False

    def test_cart_total_includes_extras(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        store.add_to_cart(_product("Margherita Pizza"))
        store.increase_extra(0, "cheese")
        assert store.get_cart_total() == Decimal("29.00")


class TestCheckout:

    def test_empty_cart_is_rejected(self):
        store = _make_store()
        before = store.history_size
        assert store.checkout() is None
        assert store.get("orders") == []
        assert store.history_size == before

    def test_checkout_records_order_and_clears_cart(self):
        store = _make_store()
        store.add_to_cart(_product("Coca Cola"))
        store.add_to_cart(_product("Tiramisu"))
        now = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

        record = store.checkout(now=now)

        assert record.total == Decimal("10.29")
        assert record.status == "preparing"
        assert record.timestamp == now.isoformat()
        assert [line.name for line in record.items] == ["Coca Cola", "Tiramisu"]
        assert store.get("orders") == [record]
        assert store.cart_lines() == []

    def test_order_snapshot_is_independent_of_cart(self):
        store = _make_store()
        store.add_to_cart(_product("Coca Cola"))
        record = store.checkout()
        store.add_to_cart(_product("Coca Cola"))
        store.increase_cart_quantity(_product("Coca Cola").product_id)
        assert record.items[0].quantity == 1

    def test_order_ids_increase(self):
        store = _make_store()
        store.add_to_cart(_product("Coca Cola"))
        first = store.checkout()
        store.add_to_cart(_product("Coca Cola"))
        second = store.checkout()
        assert second.order_id > first.order_id


class TestUndo:

    def test_catalog_seed_is_not_undoable(self):
        store = _make_store()
        assert store.history_size == 0
        assert store.undo() is False
        assert len(store.get("products")) == len(PRODUCTS)

    def test_undo_restores_cart_after_add(self):
        store = _make_store()
        store.add_to_cart(_product("Coca Cola"))
        store.add_to_cart(_product("Tiramisu"))
        store.undo()
        assert [line.name for line in store.cart_lines()] == ["Coca Cola"]

    def test_undo_after_direct_cart_reset(self):
        store = _make_store()
        store.add_to_cart(_product("Tiramisu"))
        before = store.cart_lines()
        store.set_path("cart", [])
        assert store.undo() is True
        assert store.cart_lines() == before

    def test_undo_restores_quantity(self):
        store = _make_store()
        product = _product("Coca Cola")
        store.add_to_cart(product)
        store.increase_cart_quantity(product.product_id)
        store.undo()
        assert store.cart_lines()[0].quantity == 1

    def test_undo_restores_extras(self):
        store = _make_store()
        store.add_to_cart(_product("Margherita Pizza"))
        store.increase_extra(0, "cheese")
        store.increase_extra(0, "cheese")
        store.undo()
        assert store.cart_lines()[0].extras["cheese"].quantity == 1

    def test_cart_listener_fires_on_mutation(self):
        store = _make_store()
        seen = []
        store.subscribe("cart", lambda value, current, old: seen.append(len(value)))
        store.add_to_cart(_product("Coca Cola"))
        store.clear_cart()
        assert seen == [1, 0]

# Overview: Pytest coverage for the Cart State Manager (no database).

from types import SimpleNamespace

import pytest

from retailpos.errors import InvalidInput, OutOfStock
from retailpos.services.cart_service import Cart


def _product(product_id=1, store_id=1, stock_qty=2, price_cents=10000, tax_override_bps=None, name="Notebook"):
    return SimpleNamespace(
        id=product_id,
        store_id=store_id,
        name=name,
        sku=f"SKU-{product_id}",
        price_cents=price_cents,
        stock_qty=stock_qty,
        tax_override_bps=tax_override_bps,
    )


@pytest.fixture
def category():
    return SimpleNamespace(default_gst_bps=1800, default_discount_bps=0)


@pytest.fixture
def store():
    return SimpleNamespace(id=1, global_discount_bps=0)


class TestAddItem:
    def test_first_add_resolves_defaults(self, category, store):
        cart = Cart(store_id=1)
        line = cart.add_item(_product(), category, store)

        assert line.quantity == 1
        assert line.applied_tax_bps == 1800
        assert line.applied_discount_bps == 0
        assert line.line_total_cents == 11800
        assert cart.compute_totals().grand_total_cents == 11800

    def test_repeat_add_increments_quantity(self, category, store):
        cart = Cart(store_id=1)
        product = _product(stock_qty=2)
        cart.add_item(product, category, store)
        line = cart.add_item(product, category, store)

        assert len(cart) == 1
        assert line.quantity == 2
        assert cart.compute_totals().subtotal_cents == 20000

    def test_add_beyond_stock_raises_and_keeps_cart(self, category, store):
        cart = Cart(store_id=1)
        product = _product(stock_qty=2)
        cart.add_item(product, category, store)
        cart.add_item(product, category, store)

        with pytest.raises(OutOfStock) as exc:
            cart.add_item(product, category, store)
        assert exc.value.available == 2
        assert cart.get_line(product.id).quantity == 2

    def test_zero_stock_product_cannot_be_added(self, category, store):
        cart = Cart(store_id=1)
        with pytest.raises(OutOfStock):
            cart.add_item(_product(stock_qty=0), category, store)
        assert cart.is_empty

    def test_product_from_other_store_rejected(self, category, store):
        cart = Cart(store_id=1)
        with pytest.raises(InvalidInput):
            cart.add_item(_product(store_id=2), category, store)

    def test_percentages_frozen_at_add_time(self, category, store):
        cart = Cart(store_id=1)
        product = _product(stock_qty=5)
        cart.add_item(product, category, store)

        category.default_gst_bps = 500
        store.global_discount_bps = 1000
        line = cart.add_item(product, category, store)

        assert line.applied_tax_bps == 1800
        assert line.applied_discount_bps == 0

    def test_store_discount_and_tax_override(self, category, store):
        store.global_discount_bps = 500
        category.default_discount_bps = 1000
        cart = Cart(store_id=1)
        line = cart.add_item(_product(tax_override_bps=0), category, store)

        assert line.applied_discount_bps == 500
        assert line.applied_tax_bps == 0
        assert line.line_total_cents == 9500


class TestMutations:
    def test_quantity_floors_at_one(self, category, store):
        cart = Cart(store_id=1)
        product = _product(stock_qty=5)
        cart.add_item(product, category, store)

        line = cart.change_quantity(product.id, -10)
        assert line.quantity == 1

    def test_quantity_increase_checked_against_known_stock(self, category, store):
        cart = Cart(store_id=1)
        product = _product(stock_qty=3)
        cart.add_item(product, category, store)

        assert cart.change_quantity(product.id, 2).quantity == 3
        with pytest.raises(OutOfStock):
            cart.change_quantity(product.id, 1)

        cart.update_known_stock(product.id, 10)
        assert cart.change_quantity(product.id, 1).quantity == 4

    def test_manual_discount_is_clamped(self, category, store):
        cart = Cart(store_id=1)
        product = _product()
        cart.add_item(product, category, store)

        line = cart.set_line_discount(product.id, 12000)
        assert line.applied_discount_bps == 10000
        assert line.line_total_cents == 0

        line = cart.set_line_discount(product.id, -300)
        assert line.applied_discount_bps == 0

    def test_remove_and_clear(self, category, store):
        cart = Cart(store_id=1)
        cart.add_item(_product(product_id=1), category, store)
        cart.add_item(_product(product_id=2, name="Pen"), category, store)

        cart.remove_item(1)
        assert [l.product_id for l in cart.lines] == [2]

        with pytest.raises(InvalidInput):
            cart.remove_item(1)

        cart.clear()
        assert cart.is_empty
        assert cart.compute_totals().grand_total_cents == 0

    def test_checkout_lines_carry_frozen_values(self, category, store):
        cart = Cart(store_id=1)
        product = _product(stock_qty=4, price_cents=999)
        cart.add_item(product, category, store)
        cart.change_quantity(product.id, 2)
        cart.set_line_discount(product.id, 1000)

        (line,) = cart.to_checkout_lines()
        assert line.product_id == product.id
        assert line.quantity == 3
        assert line.unit_price_cents == 999
        assert line.applied_tax_bps == 1800
        assert line.applied_discount_bps == 1000
        assert line.client_line_total_cents == 3183

"""Tests for the ShoppingCart aggregate: adding, merging and totals."""

from decimal import Decimal

import pytest
from ordering.cart.cart import Cart
from shared.errors import NotFoundError, ValidationError


class TestAddLine:
    def test_add_new_product(self):
        cart = Cart.create(user_id=1)
        line = cart.add_line(10, 2, Decimal("99.50"))

        assert line.product_id == 10
        assert line.quantity == 2
        assert cart.subtotal == Decimal("199.00")
        assert not cart.is_empty

    def test_same_product_merges_quantities(self):
        cart = Cart.create(user_id=1)
        cart.add_line(10, 2, "10.00")
        cart.add_line(10, 3, "12.00")

        assert len(cart.visible_lines) == 1
        assert cart.visible_lines[0].quantity == 5
        # The latest captured price wins
        assert cart.visible_lines[0].unit_price == Decimal("12.00")

    def test_removed_line_is_revived_not_duplicated(self):
        cart = Cart.create(user_id=1)
        line = cart.add_line(10, 4, "10.00")
        line.is_deleted = True

        cart.add_line(10, 1, "10.00")

        assert len(cart.lines) == 1
        assert cart.visible_lines[0].quantity == 1

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_quantity_must_be_positive(self, quantity):
        cart = Cart.create(user_id=1)
        with pytest.raises(ValidationError):
            cart.add_line(10, quantity, "10.00")


class TestLines:
    def test_unknown_line(self):
        cart = Cart.create(user_id=1)
        with pytest.raises(NotFoundError):
            cart.get_line(999)

    def test_soft_deleted_lines_excluded_from_subtotal(self):
        cart = Cart.create(user_id=1)
        cart.add_line(10, 1, "10.00")
        gone = cart.add_line(11, 1, "5.00")
        gone.is_deleted = True

        assert cart.subtotal == Decimal("10.00")

    def test_clear(self):
        cart = Cart.create(user_id=1)
        cart.add_line(10, 1, "10.00")
        cart.clear()
        assert cart.is_empty
        assert cart.subtotal == Decimal("0.00")

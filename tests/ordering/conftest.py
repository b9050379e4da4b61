import pytest


@pytest.fixture
def place_order(checkout, seed, customer):
    """Fill a cart with ``(product, quantity)`` pairs and check it out."""

    def _place(*items, principal=customer, coupon_code=None):
        address = seed.address(user_id=principal.user_id)
        for product, quantity in items:
            seed.cart_item(product.id, quantity, user_id=principal.user_id)
        return checkout.place_order(principal, address.id, coupon_code=coupon_code)

    return _place

"""Pydantic request/response schemas for the Ordering API.

Order and report responses reuse the read models in ``ordering.projections``.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: int
    quantity: int = Field(ge=1, default=1)


class UpdateCartLineRequest(BaseModel):
    quantity: int = Field(ge=1)


class CartLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CartResponse(BaseModel):
    id: int
    user_id: int
    lines: list[CartLineResponse]
    subtotal: Decimal
    item_count: int

    @classmethod
    def from_cart(cls, cart) -> "CartResponse":
        lines = cart.visible_lines
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            lines=[CartLineResponse.model_validate(line) for line in lines],
            subtotal=cart.subtotal,
            item_count=sum(line.quantity for line in lines),
        )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    address_id: int
    coupon_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "address_id": 1,
                    "coupon_code": "FLAT50",
                }
            ]
        }
    }


class UpdateOrderStatusRequest(BaseModel):
    status: str
    tracking_number: str | None = None


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
class ValidateCouponRequest(BaseModel):
    code: str
    order_amount: Decimal = Field(ge=0)


class ValidateCouponResponse(BaseModel):
    valid: bool
    discount_amount: Decimal
    reason: str | None = None

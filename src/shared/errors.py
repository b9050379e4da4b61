"""Error taxonomy shared by every bounded context.

Each error carries a stable machine-readable ``kind`` and a human-readable
message. The HTTP layer maps ``kind`` to a status code; domain code never
deals with transport concerns.
"""


class MarketplaceError(Exception):
    """Base class for all errors surfaced to callers."""

    kind = "internal"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class NotFoundError(MarketplaceError):
    kind = "not_found"

    def __init__(self, entity: str, identifier=None):
        message = f"{entity} not found" if identifier is None else f"{entity} '{identifier}' not found"
        super().__init__(message, {"entity": entity, "id": identifier})
        self.entity = entity
        self.identifier = identifier


class ValidationError(MarketplaceError):
    """Malformed input. ``messages`` maps field names to lists of problems."""

    kind = "validation"

    def __init__(self, messages: dict[str, list[str]]):
        flat = "; ".join(f"{field}: {', '.join(errors)}" for field, errors in messages.items())
        super().__init__(flat, {"messages": messages})
        self.messages = messages


class EmptyCartError(MarketplaceError):
    kind = "empty_cart"

    def __init__(self, message: str = "Your cart is empty. Add items before placing an order."):
        super().__init__(message)


class CouponInvalidError(MarketplaceError):
    kind = "coupon_invalid"

    def __init__(self, reason: str):
        super().__init__(reason, {"reason": reason})
        self.reason = reason


class InsufficientStockError(MarketplaceError):
    kind = "insufficient_stock"

    def __init__(self, product_ids, message: str | None = None):
        self.product_ids = sorted(set(product_ids))
        if message is None:
            ids = ", ".join(str(pid) for pid in self.product_ids)
            message = f"Insufficient stock for product(s): {ids}"
        super().__init__(message, {"product_ids": self.product_ids})


class InvalidTransitionError(MarketplaceError):
    kind = "invalid_transition"

    def __init__(self, from_status, to_status):
        self.from_status = getattr(from_status, "value", from_status)
        self.to_status = getattr(to_status, "value", to_status)
        super().__init__(
            f"Cannot transition from {self.from_status} to {self.to_status}",
            {"from": self.from_status, "to": self.to_status},
        )


class AuthorizationError(MarketplaceError):
    kind = "authorization"


class ConflictError(MarketplaceError):
    """A concurrent writer won a race. Safe to retry once."""

    kind = "conflict"


class InternalError(MarketplaceError):
    kind = "internal"


class CheckoutTimeoutError(InternalError):
    kind = "checkout_timeout"

    def __init__(self, timeout_seconds: float, step: str):
        super().__init__(
            f"Checkout exceeded {timeout_seconds}s (at step '{step}') and was rolled back",
            {"timeout_seconds": timeout_seconds, "step": step},
        )

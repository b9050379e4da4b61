from ordering.api.routes import cart_router, coupon_router, order_router, report_router

__all__ = ["cart_router", "coupon_router", "order_router", "report_router"]

"""Human-readable order numbers: ``ORD-YYYYMMDD-NNNNNN``."""

import secrets
import uuid

from shared.db import utc_now


def generate_order_number(now=None) -> str:
    now = now or utc_now()
    return f"ORD-{now:%Y%m%d}-{100000 + secrets.randbelow(900000)}"


def generate_transaction_id(order_id) -> str:
    return f"ORD-{order_id}-{uuid.uuid4().hex}"

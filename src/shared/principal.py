"""The authenticated caller, as issued by the external auth layer."""

from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    CUSTOMER = "Customer"
    SELLER = "Seller"
    ADMIN = "Admin"


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_seller(self) -> bool:
        return self.role is Role.SELLER

    @property
    def is_customer(self) -> bool:
        return self.role is Role.CUSTOMER

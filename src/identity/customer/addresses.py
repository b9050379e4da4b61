"""Customer address book.

A user may hold any number of addresses, at most one of which is the default.
Orders reference an address by id and copy its display line, so editing an
address later never rewrites historical orders.
"""

import structlog
from sqlalchemy import Boolean, Integer, String, select, update
from sqlalchemy.orm import Mapped, Session, mapped_column

from shared.db import Base, SoftDeleteMixin, TimestampMixin, utc_now, visible
from shared.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class Address(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def display_line(self) -> str:
        parts = (self.street, self.city, self.state, self.country, self.zip_code)
        return ", ".join(part for part in parts if part)


def _unset_other_defaults(session: Session, user_id: int, exclude_id: int | None = None) -> None:
    stmt = (
        update(Address)
        .where(Address.user_id == user_id, Address.is_default.is_(True), visible(Address))
        .values(is_default=False, updated_at=utc_now())
    )
    if exclude_id is not None:
        stmt = stmt.where(Address.id != exclude_id)
    session.execute(stmt)


def add_address(session: Session, user_id: int, street, city, country, zip_code, state="", is_default=False):
    """Add an address to the user's book. ``is_default`` clears the old default."""
    errors = {}
    for field, value in (("street", street), ("city", city), ("country", country), ("zip_code", zip_code)):
        if not value or not str(value).strip():
            errors[field] = ["is required"]
    if errors:
        raise ValidationError(errors)

    if is_default:
        _unset_other_defaults(session, user_id)

    address = Address(
        user_id=user_id,
        street=street.strip(),
        city=city.strip(),
        state=(state or "").strip(),
        country=country.strip(),
        zip_code=zip_code.strip(),
        is_default=is_default,
    )
    session.add(address)
    session.flush()
    logger.info("Address added", user_id=user_id, address_id=address.id, is_default=is_default)
    return address


def get_address(session: Session, address_id: int, user_id: int) -> Address:
    """Load an address owned by ``user_id``; another user's address is reported as missing."""
    address = session.scalar(
        select(Address).where(Address.id == address_id, Address.user_id == user_id, visible(Address))
    )
    if address is None:
        raise NotFoundError("Address", address_id)
    return address


def set_default_address(session: Session, address_id: int, user_id: int) -> Address:
    address = get_address(session, address_id, user_id)
    _unset_other_defaults(session, user_id, exclude_id=address.id)
    address.is_default = True
    session.flush()
    return address


def remove_address(session: Session, address_id: int, user_id: int) -> None:
    address = get_address(session, address_id, user_id)
    address.is_deleted = True
    address.is_default = False
    session.flush()

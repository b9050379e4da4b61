import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from shared.principal import Principal, Role

CUSTOMER = Principal(user_id=1, role=Role.CUSTOMER, email="buyer@example.com")
OTHER_CUSTOMER = Principal(user_id=2, role=Role.CUSTOMER, email="other@example.com")
SELLER = Principal(user_id=100, role=Role.SELLER, email="seller@example.com")
OTHER_SELLER = Principal(user_id=200, role=Role.SELLER, email="other-seller@example.com")
ADMIN = Principal(user_id=900, role=Role.ADMIN, email="admin@example.com")


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the configuration overlay before any test module is imported."""
    os.environ["MARKETPLACE_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
@pytest.fixture
def config(tmp_path):
    """Test configuration on a throwaway SQLite file unless a database URL is given."""
    from shared.config import load_config

    config = load_config("test")
    url = os.environ.get("MARKETPLACE_DATABASE_URL") or f"sqlite:///{tmp_path / 'marketplace.db'}"
    return config.with_overrides(database_url=url)


@pytest.fixture
def database(config):
    from shared.db import Database, drop_db, setup_db

    db = Database(config.database_url)
    setup_db(db)
    yield db
    drop_db(db)
    db.dispose()


@pytest.fixture
def session(database):
    """A session for direct reads and writes in tests; callers commit explicitly."""
    with database.session_factory() as session:
        yield session


@pytest.fixture
def mail():
    from notifications.channel.fake_email import FakeEmailAdapter

    return FakeEmailAdapter()


@pytest.fixture
def mailer(mail):
    from notifications.notification.dispatch import OrderMailer

    return OrderMailer(channel=mail)


@pytest.fixture
def checkout(database, config, mailer):
    from ordering.checkout.engine import CheckoutEngine

    return CheckoutEngine(database.session_factory, config, mailer=mailer)


@pytest.fixture
def lifecycle(database, mailer):
    from ordering.order.lifecycle import OrderLifecycleManager

    return OrderLifecycleManager(database.session_factory, mailer=mailer)


@pytest.fixture
def seed(database):
    return Seeder(database)


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------
class Seeder:
    """Writes fixture data, each call in its own committed transaction."""

    def __init__(self, database):
        self.database = database

    def _commit(self, fn):
        with self.database.session_factory() as session, session.begin():
            return fn(session)

    def product(
        self,
        name="Widget",
        price="100.00",
        seller_id=SELLER.user_id,
        discount_price=None,
        is_active=True,
        stock=None,
        low_stock_threshold=10,
    ):
        from catalogue.product.product import Product
        from inventory.stock.initialization import initialize_stock

        def _create(session):
            product = Product.create(
                name=name,
                price=price,
                seller_id=seller_id,
                discount_price=discount_price,
                is_active=is_active,
            )
            session.add(product)
            session.flush()
            if stock is not None:
                initialize_stock(session, product.id, stock, low_stock_threshold)
            return product

        return self._commit(_create)

    def address(self, user_id=CUSTOMER.user_id, street="12 MG Road", city="Bengaluru", is_default=True):
        from identity.customer.addresses import add_address

        return self._commit(
            lambda session: add_address(
                session,
                user_id,
                street=street,
                city=city,
                state="Karnataka",
                country="India",
                zip_code="560001",
                is_default=is_default,
            )
        )

    def coupon(
        self,
        code="FLAT50",
        type="FlatAmount",
        value="50",
        min_purchase_amount=None,
        max_discount_amount=None,
        usage_limit=0,
        is_active=True,
        valid_from=None,
        valid_to=None,
    ):
        from ordering.coupon.coupon import Coupon

        now = datetime.now(UTC)

        def _create(session):
            coupon = Coupon.create(
                code=code,
                type=type,
                value=value,
                valid_from=valid_from or now - timedelta(days=1),
                valid_to=valid_to or now + timedelta(days=30),
                min_purchase_amount=min_purchase_amount,
                max_discount_amount=max_discount_amount,
                usage_limit=usage_limit,
                is_active=is_active,
            )
            session.add(coupon)
            session.flush()
            return coupon

        return self._commit(_create)

    def cart_item(self, product_id, quantity=1, user_id=CUSTOMER.user_id):
        from ordering.cart.items import add_to_cart

        return self._commit(lambda session: add_to_cart(session, user_id, product_id, quantity))

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------
    def stock_of(self, product_id) -> int:
        from inventory.stock.stock import get_stock

        return self._commit(lambda session: get_stock(session, product_id).stock_quantity)

    def used_count(self, code) -> int:
        from ordering.coupon.coupon import find_coupon_by_code

        return self._commit(lambda session: find_coupon_by_code(session, code).used_count)

    def cart_lines(self, user_id=CUSTOMER.user_id) -> list[tuple[int, int]]:
        from ordering.cart.items import find_cart

        def _read(session):
            cart = find_cart(session, user_id)
            return [(line.product_id, line.quantity) for line in cart.visible_lines] if cart else []

        return self._commit(_read)

    def order(self, order_id):
        from sqlalchemy import select

        from ordering.order.order import Order

        return self._commit(lambda session: session.scalar(select(Order).where(Order.id == order_id)))

    def count(self, model) -> int:
        from sqlalchemy import func, select

        return self._commit(lambda session: session.scalar(select(func.count()).select_from(model)))

    def set_created_at(self, order_id, created_at):
        from sqlalchemy import update

        from ordering.order.order import Order

        self._commit(
            lambda session: session.execute(
                update(Order).where(Order.id == order_id).values(created_at=created_at)
            )
        )


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------
@pytest.fixture
def customer():
    return CUSTOMER


@pytest.fixture
def other_customer():
    return OTHER_CUSTOMER


@pytest.fixture
def seller():
    return SELLER


@pytest.fixture
def other_seller():
    return OTHER_SELLER


@pytest.fixture
def admin():
    return ADMIN


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
def headers_for(principal):
    """Headers the upstream auth layer sets for an authenticated caller."""
    headers = {"X-User-Id": str(principal.user_id), "X-User-Role": principal.role.value}
    if principal.email:
        headers["X-User-Email"] = principal.email
    return headers


@pytest.fixture
def client(config, database, mailer):
    from fastapi.testclient import TestClient

    from app import build_services, create_app

    app = create_app(services=build_services(config, database=database, mailer=mailer))
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth():
    return headers_for

import itertools
from types import SimpleNamespace
from typing import List, Tuple

import pytest

from marketplace import create_app
from marketplace.core.config import MailConfig
from marketplace.core.security import create_access_token, hash_password
from marketplace.db import get_session
from marketplace.models import Order, OutboxEvent, Product, Shop, SubOrder, User
from marketplace.repositories.product_repository import ProductRepository
from marketplace.services.notification_service import Mailer

TEST_SETTINGS = {
    "DATABASE_URL": "sqlite://",
    "ENVIRONMENT": "testing",
    "LOG_LEVEL": "WARNING",
    "JWT_SECRET_KEY": "test-secret-key-long-enough-for-hmac-sha256",
    "PASSWORD_HASH_ROUNDS": "4",
    "MAIL_BACKEND": "console",
    "OUTBOX_DISPATCH_INLINE": "true",
    "OUTBOX_MAX_ATTEMPTS": "3",
    "RATE_LIMIT": "1000 per minute",
}

ADDRESS = {
    "fullName": "John Doe",
    "address": "12 Market Street",
    "city": "Springfield",
    "postalCode": "12345",
    "country": "USA",
}


class RecordingMailer(Mailer):
    """Keeps sent emails in memory; set ``fail`` to simulate an outage."""

    def __init__(self):
        super().__init__(MailConfig())
        self.fail = False
        self.sent: List[Tuple[str, str, str]] = []

    def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise ConnectionError("mail relay unavailable")
        self.sent.append((to, subject, body))


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def app(mailer):
    return create_app(TEST_SETTINGS, mailer=mailer)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def config(app):
    return app.extensions["marketplace"]["config"]


@pytest.fixture()
def dispatcher(app):
    return app.extensions["marketplace"]["dispatcher"]


# --------------------------------------------------------------------------- #
# Factories                                                                    #
# --------------------------------------------------------------------------- #
@pytest.fixture()
def make_user(config):
    counter = itertools.count(1)

    def _make(role: str = "customer", name: str = None):
        n = next(counter)
        email = f"{role}{n}@example.com"
        with get_session() as session:
            user = User(
                name=name or f"{role.title()} {n}",
                email=email,
                password_hash=hash_password("password123", 4),
                role=role,
            )
            session.add(user)
            session.flush()
            user_id = user.id
        token = create_access_token(user_id, role, config.security)
        return SimpleNamespace(
            id=user_id,
            email=email,
            name=name or f"{role.title()} {n}",
            role=role,
            headers={"Authorization": f"Bearer {token}"},
        )

    return _make


@pytest.fixture()
def make_shop():
    counter = itertools.count(1)

    def _make(owner, name: str = None, status: str = "active") -> int:
        with get_session() as session:
            shop = Shop(owner_id=owner.id, name=name or f"Shop {next(counter)}", status=status)
            session.add(shop)
            session.flush()
            return shop.id

    return _make


@pytest.fixture()
def make_product():
    counter = itertools.count(1)

    def _make(shop_id: int, price_cents: int = 1000, stock: int = 5, name: str = None, tags=()) -> int:
        with get_session() as session:
            product = Product(
                shop_id=shop_id,
                name=name or f"Product {next(counter)}",
                description="A fine product",
                price_cents=price_cents,
                stock=stock,
            )
            ProductRepository(session).set_tags(product, tags)
            session.add(product)
            session.flush()
            return product.id

    return _make


@pytest.fixture()
def customer(make_user):
    return make_user("customer", name="John Doe")


@pytest.fixture()
def vendor(make_user):
    return make_user("vendor", name="Tech Vendor")


@pytest.fixture()
def admin(make_user):
    return make_user("admin", name="Admin User")


@pytest.fixture()
def shop(make_shop, vendor):
    return make_shop(vendor, name="Tech Haven")


# --------------------------------------------------------------------------- #
# Helpers                                                                      #
# --------------------------------------------------------------------------- #
def place_order(client, user, lines, key=None, address=ADDRESS):
    headers = dict(user.headers)
    if key:
        headers["Idempotency-Key"] = key
    body = {"products": [{"product": p, "quantity": q} for p, q in lines]}
    if address is not None:
        body["shippingAddress"] = address
    return client.post("/api/orders", json=body, headers=headers)


def stock_of(product_id: int) -> int:
    with get_session() as session:
        return session.get(Product, product_id).stock


def row_counts():
    with get_session() as session:
        return {
            "orders": session.query(Order).count(),
            "sub_orders": session.query(SubOrder).count(),
            "events": session.query(OutboxEvent).count(),
        }

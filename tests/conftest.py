import os

os.environ["POSTGRES_DSN"] = "sqlite://"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from storefront.core.config import settings  # noqa: E402
from storefront.db import models  # noqa: E402
from storefront.db.session import Base, SessionLocal, engine  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.services import orders, registrations  # noqa: E402


@pytest.fixture
def db():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


def make_token(sub="user-1", role="customer", type_="access"):
    payload = {
        "sub": sub,
        "role": role,
        "type": type_,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token(sub='admin-1', role='admin')}"}


@pytest.fixture
def customer_headers():
    return {"Authorization": f"Bearer {make_token(sub='user-1')}"}


def create_order(db, lines, shipping_fee=0, user_id="user-1") -> models.Order:
    """``lines`` is a list of (price, quantity) pairs."""
    items = [
        {"product_id": i + 1, "title": f"Item {i + 1}", "price": price, "quantity": qty}
        for i, (price, qty) in enumerate(lines)
    ]
    return orders.checkout(db, user_id, items, shipping_fee, {"address_line1": "1 Loom Lane", "city": "Galway"})


def create_event(db, total_seats=10, price=2500, slug="wheel-throwing", status="UPCOMING") -> models.Event:
    starts = datetime(2026, 11, 7, 10, tzinfo=timezone.utc)
    return registrations.create_event(
        db,
        slug=slug,
        title="Wheel throwing for beginners",
        starts_at=starts,
        ends_at=starts + timedelta(hours=3),
        total_seats=total_seats,
        price=price,
        status=status,
    )

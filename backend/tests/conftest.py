# backend/tests/conftest.py
import os
import tempfile
from datetime import datetime
from decimal import Decimal
from typing import Dict

import pytest
from fastapi.testclient import TestClient

# Settings are read at import time: point them at an in-memory database first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["EXPORT_DIR"] = tempfile.mkdtemp(prefix="freightdesk-exports-")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="freightdesk-uploads-")

from freightdesk.main import app  # noqa: E402
from freightdesk.db.database import Base, SessionLocal, engine  # noqa: E402
from freightdesk.models import Client, ShippingPlan, ShippingRate, User, UserRole  # noqa: E402
from freightdesk.services.clock import FixedClock, get_clock  # noqa: E402
from freightdesk.services.security import create_access_token, get_password_hash  # noqa: E402

FIXED_NOW = datetime(2024, 3, 15, 10, 30)


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture
def client(clock):
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db, email: str, role: UserRole) -> User:
    user = User(
        name=email.split("@")[0],
        email=email,
        password_hash=get_password_hash("secret123"),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin_user(db) -> User:
    return _make_user(db, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def staff_user(db) -> User:
    return _make_user(db, "staff@example.com", UserRole.USER)


@pytest.fixture
def admin_headers(admin_user) -> Dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def staff_headers(staff_user) -> Dict[str, str]:
    return auth_headers(staff_user)


@pytest.fixture
def seed(db) -> Dict[str, int]:
    """
    Rate tables and consignors:

    - default table KL -> PEN: 10.00 up to 1 kg, then 2.00 per kg
    - "Corporate" plan KL -> PEN: 8.00 up to 2 kg, then 1.50 per kg
    - Acme has no plan, Beta is on Corporate
    """
    plan = ShippingPlan(name="Corporate")
    db.add(plan)
    db.flush()
    db.add_all([
        ShippingRate(
            origin="KL", destination="PEN",
            minimum_weight=Decimal("1"), minimum_price=Decimal("10.00"),
            additional_price_per_kg=Decimal("2.00"),
        ),
        ShippingRate(
            origin="KL", destination="JHB",
            minimum_weight=Decimal("1"), minimum_price=Decimal("12.00"),
            additional_price_per_kg=Decimal("3.00"),
        ),
        ShippingRate(
            origin="KL", destination="PEN", shipping_plan_id=plan.id,
            minimum_weight=Decimal("2"), minimum_price=Decimal("8.00"),
            additional_price_per_kg=Decimal("1.50"),
        ),
    ])
    acme = Client(company_name="Acme Trading")
    beta = Client(company_name="Beta Logistics", shipping_plan_id=plan.id)
    db.add_all([acme, beta])
    db.commit()
    return {"plan_id": plan.id, "acme_id": acme.id, "beta_id": beta.id}

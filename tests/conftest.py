"""
Shared fixtures: in-memory SQLite order store, FastAPI TestClient with overridden
dependencies, and factories for catalog items and orders.
Environment is set before any app module is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["ADMIN_ID"] = "admin-test"
os.environ["ADMIN_PASSWORD"] = "correct-horse-battery"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-0123456789"
os.environ["CASHFREE_ENV"] = "sandbox"
os.environ["CASHFREE_WEBHOOK_SECRET"] = ""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_approval_effects, get_gateway, get_settings
from app.core.config import settings
from app.db.init_db import create_tables
from app.db.session import get_db
from app.models.order import METHOD_CASHFREE, STATUS_AWAITING_PAYMENT, Order
from app.models.plan import Plan
from app.models.rank import Rank
from app.reconciliation import ApprovalEffects
from app.services.auth.jwt import create_access_token
from app.services.cashfree.client import CashfreeClient
from app.services.circuit_breaker import _breakers
from app.services.orders.service import generate_order_id


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def effects():
    return MagicMock(spec=ApprovalEffects)


@pytest.fixture
def gateway():
    return MagicMock(spec=CashfreeClient)


@pytest.fixture(autouse=True)
def reset_gateway_breaker():
    _breakers.clear()
    yield


@pytest.fixture
def app_settings():
    """Settings passed to routes; tests override fields with model_copy."""
    return settings


@pytest.fixture
def client(session_factory, effects, gateway, app_settings):
    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_approval_effects] = lambda: effects
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_settings] = lambda: app_settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": settings.admin_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_plan(db):
    def _make(**kwargs) -> Plan:
        plan = Plan(
            name=kwargs.get("name", "Premium"),
            price=kwargs.get("price", 1999),
            period=kwargs.get("period", "/month"),
            description=kwargs.get("description", "All matches"),
            features=kwargs.get("features", ["All Matches"]),
            active=kwargs.get("active", True),
            discount=kwargs.get("discount", 0),
        )
        db.add(plan)
        db.commit()
        db.refresh(plan)
        return plan
    return _make


@pytest.fixture
def make_rank(db):
    def _make(**kwargs) -> Rank:
        rank = Rank(
            rank_number=kwargs.get("rank_number", 1),
            name=kwargs.get("name", "1st Rank"),
            original_price=kwargs.get("original_price", 6999),
            discounted_price=kwargs.get("discounted_price", 1999),
            features=kwargs.get("features", []),
        )
        db.add(rank)
        db.commit()
        db.refresh(rank)
        return rank
    return _make


@pytest.fixture
def make_order(db):
    def _make(**kwargs) -> Order:
        order = Order(
            order_id=kwargs.get("order_id") or generate_order_id(),
            item_type=kwargs.get("item_type", "rank"),
            plan_name=kwargs.get("plan_name", "1st Rank"),
            amount=kwargs.get("amount", 1999.0),
            name=kwargs.get("name", "Ravi Kumar"),
            phone=kwargs.get("phone", "9876543210"),
            email=kwargs.get("email", "ravi@example.com"),
            payment_method=kwargs.get("payment_method", METHOD_CASHFREE),
            utr_number=kwargs.get("utr_number"),
            gateway_order_id=kwargs.get("gateway_order_id", "CF123"),
            status=kwargs.get("status", STATUS_AWAITING_PAYMENT),
        )
        db.add(order)
        db.commit()
        db.refresh(order)
        return order
    return _make

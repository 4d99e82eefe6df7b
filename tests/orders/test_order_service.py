"""Tests for order id generation, UTR normalization, the duplicate-UTR race and the dashboard aggregate."""
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from app.models.order import STATUS_APPROVED, STATUS_AWAITING_PAYMENT, STATUS_PENDING


class TestGenerateOrderId:
    def test_format(self):
        from app.services.orders.service import generate_order_id

        order_id = generate_order_id(now_ms=1760870400123)

        assert re.fullmatch(r"ORD70400123[0-9A-Z]{4}", order_id)

    def test_link_prefix(self):
        from app.services.orders.service import LINK_PREFIX, generate_order_id

        assert generate_order_id(LINK_PREFIX).startswith("LINK")

    def test_ids_differ_within_same_millisecond(self):
        from app.services.orders.service import generate_order_id

        ids = {generate_order_id(now_ms=1760870400123) for _ in range(50)}

        assert len(ids) > 1


class TestNormalizeUtr:
    def test_strips_and_uppercases(self):
        from app.services.orders.service import normalize_utr

        assert normalize_utr("  abc123def ", 6) == "ABC123DEF"

    def test_too_short(self):
        from app.core.errors import ValidationError
        from app.services.orders.service import normalize_utr

        with pytest.raises(ValidationError):
            normalize_utr("ab1", 6)


class TestDashboard:
    def test_counts_and_revenue(self, db, make_order):
        from app.services.orders.service import OrderService

        make_order(status=STATUS_APPROVED, amount=1999.0)
        make_order(status=STATUS_APPROVED, amount=999.0)
        make_order(status=STATUS_PENDING, amount=1499.0)
        make_order(status=STATUS_AWAITING_PAYMENT, amount=1499.0)

        stats = OrderService(db).dashboard("all")

        assert stats["totalOrders"] == 4
        assert stats["approvedOrders"] == 2
        assert stats["pendingOrders"] == 1
        assert stats["awaitingPaymentOrders"] == 1
        assert stats["totalRevenue"] == 2998.0
        assert len(stats["recentOrders"]) == 4

    def test_range_excludes_older_orders(self, db, make_order):
        from app.services.orders.service import OrderService

        old = make_order(status=STATUS_APPROVED, amount=500.0)
        old.created_at = datetime.now(timezone.utc) - timedelta(days=40)
        db.commit()
        make_order(status=STATUS_APPROVED, amount=1999.0)

        stats = OrderService(db).dashboard("month")

        assert stats["totalOrders"] == 1
        assert stats["totalRevenue"] == 1999.0

    def test_invalid_range(self, db):
        from app.core.errors import ValidationError
        from app.services.orders.service import OrderService

        with pytest.raises(ValidationError):
            OrderService(db).dashboard("decade")


class TestManualOrderUtrRace:
    def test_concurrent_submissions_store_one_order(self, tmp_path):
        from sqlalchemy import create_engine
        from sqlalchemy.orm import sessionmaker

        from app.core.errors import DuplicateReferenceError
        from app.db.init_db import create_tables
        from app.models.order import Order
        from app.models.plan import Plan
        from app.schemas.orders import OrderCreateIn
        from app.services.orders.service import OrderService

        engine = create_engine(
            f"sqlite:///{tmp_path / 'utr.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        create_tables(engine)
        factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        seed = factory()
        plan = Plan(name="Premium", price=1999, period="/month", description="All matches", features=[], active=True)
        seed.add(plan)
        seed.commit()
        plan_id = plan.id
        seed.close()

        def submit(i: int) -> str:
            payload = OrderCreateIn.model_validate(
                {
                    "name": f"Customer {i}",
                    "phone": f"98765432{i:02d}",
                    "itemType": "plan",
                    "itemRef": plan_id,
                    "utrNumber": " utr777666 " if i % 2 else "UTR777666",
                }
            )
            session = factory()
            try:
                OrderService(session).create_manual_order(payload, utr_min_length=6)
                return "created"
            except DuplicateReferenceError:
                return "duplicate"
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(submit, range(12)))

        check = factory()
        stored = check.query(Order).filter(Order.utr_number == "UTR777666").count()
        check.close()
        engine.dispose()

        assert outcomes.count("created") == 1
        assert outcomes.count("duplicate") == 11
        assert stored == 1

"""
Tests for ReconciliationService: exactly-once approval across webhook, verify poll,
payment-link poll and admin paths; amount-mismatch refusal; gateway failure during poll.
"""
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.models.order import STATUS_APPROVED, STATUS_AWAITING_PAYMENT, STATUS_PENDING, STATUS_REJECTED
from app.services.cashfree.models import GatewayLinkOrder, GatewayLinkStatus, GatewayPayment


def _success_event(order_id: str, amount: float | None = 1999.0, payment_id: str = "PAY1"):
    from app.reconciliation.models import PAYMENT_SUCCESS_EVENT, WebhookEvent

    return WebhookEvent(
        event_type=PAYMENT_SUCCESS_EVENT,
        order_id=order_id,
        payment_id=payment_id,
        payment_status="SUCCESS",
        payment_mode="upi",
        payment_amount=amount,
    )


def _paid(amount: float | None = 1999.0, payment_id: str = "PAY1") -> GatewayPayment:
    return GatewayPayment(payment_id=payment_id, payment_status="SUCCESS", payment_amount=amount, payment_mode="upi")


def _audit_rows(db, order_id: str):
    from app.services.audit.service import AuditService

    return AuditService(db).list_for_entity("order", order_id)


class TestApproveOrder:
    def test_first_call_wins_and_fires_effects(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order()
        core = ReconciliationService(db, effects)

        approved = core.approve_order(order.order_id, "PAY1", "SUCCESS", "upi", 1999.0)

        assert approved is not None
        assert approved.status == STATUS_APPROVED
        assert approved.gateway_payment_id == "PAY1"
        assert approved.gateway_payment_status == "SUCCESS"
        assert approved.gateway_payment_mode == "upi"
        effects.on_approved.assert_called_once()

    def test_second_call_loses_and_does_not_fire(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order()
        core = ReconciliationService(db, effects)
        core.approve_order(order.order_id, "PAY1", "SUCCESS", "upi")

        again = core.approve_order(order.order_id, "PAY2", "SUCCESS", "card")

        assert again is None
        assert effects.on_approved.call_count == 1
        db.refresh(order)
        assert order.gateway_payment_id == "PAY1"

    def test_stale_sessions_still_produce_one_winner(self, session_factory, effects, make_order):
        """Both callers read awaiting_payment before either writes."""
        from app.reconciliation import ReconciliationService

        order = make_order()
        first, second = session_factory(), session_factory()
        try:
            assert ReconciliationService(first, effects).get_by_order_id(order.order_id).status == STATUS_AWAITING_PAYMENT
            assert ReconciliationService(second, effects).get_by_order_id(order.order_id).status == STATUS_AWAITING_PAYMENT

            results = [
                ReconciliationService(first, effects).approve_order(order.order_id, source="webhook"),
                ReconciliationService(second, effects).approve_order(order.order_id, source="verify"),
            ]
        finally:
            first.close()
            second.close()

        assert sum(r is not None for r in results) == 1
        effects.on_approved.assert_called_once()

    def test_concurrent_callers_produce_one_winner(self, tmp_path):
        from app.db.init_db import create_tables
        from app.models.order import Order
        from app.reconciliation import ReconciliationService

        engine = create_engine(
            f"sqlite:///{tmp_path / 'race.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        create_tables(engine)
        factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
        seed = factory()
        seed.add(Order(order_id="ORDRACE0001", plan_name="1st Rank", amount=1999.0, name="A", phone="9876543210"))
        seed.commit()
        seed.close()

        effects = MagicMock()

        def attempt(i: int) -> bool:
            session = factory()
            try:
                return ReconciliationService(session, effects).approve_order(
                    "ORDRACE0001", payment_id=f"PAY{i}", source="webhook"
                ) is not None
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            wins = list(pool.map(attempt, range(16)))

        engine.dispose()
        assert wins.count(True) == 1
        assert effects.on_approved.call_count == 1

    def test_unknown_order_is_a_loss(self, db, effects):
        from app.reconciliation import ReconciliationService

        assert ReconciliationService(db, effects).approve_order("ORDMISSING") is None
        effects.on_approved.assert_not_called()


class TestWebhookPath:
    def test_non_success_event_is_ignored(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService, WebhookEvent

        order = make_order()
        event = WebhookEvent(event_type="PAYMENT_FAILED_WEBHOOK", order_id=order.order_id)

        assert ReconciliationService(db, effects).handle_webhook(event) is None
        db.refresh(order)
        assert order.status == STATUS_AWAITING_PAYMENT
        effects.on_approved.assert_not_called()

    def test_unknown_order_raises_not_found(self, db, effects):
        from app.core.errors import NotFoundError
        from app.reconciliation import ReconciliationService

        with pytest.raises(NotFoundError):
            ReconciliationService(db, effects).handle_webhook(_success_event("ORDNOPE"))

    def test_matching_amount_approves(self, db, effects, make_order):
        """Stored 1999, webhook reports 1999."""
        from app.reconciliation import ReconciliationService

        order = make_order(amount=1999.0)

        approved = ReconciliationService(db, effects).handle_webhook(_success_event(order.order_id, 1999.0))

        assert approved.status == STATUS_APPROVED
        assert approved.gateway_payment_id == "PAY1"
        effects.on_approved.assert_called_once()

    def test_amount_mismatch_is_refused_and_audited(self, db, effects, make_order):
        """Stored 1999, webhook reports 1499."""
        from app.core.errors import AmountMismatchError
        from app.reconciliation import ReconciliationService

        order = make_order(amount=1999.0)

        with pytest.raises(AmountMismatchError):
            ReconciliationService(db, effects).handle_webhook(_success_event(order.order_id, 1499.0))

        db.refresh(order)
        assert order.status == STATUS_AWAITING_PAYMENT
        effects.on_approved.assert_not_called()
        rows = _audit_rows(db, order.order_id)
        assert len(rows) == 1
        assert rows[0].action == "amount_mismatch"
        assert rows[0].payload["expected"] == 1999.0
        assert rows[0].payload["observed"] == 1499.0

    def test_rounding_within_tolerance_approves(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order(amount=1999.0)

        approved = ReconciliationService(db, effects).handle_webhook(_success_event(order.order_id, 1999.005))

        assert approved is not None

    def test_missing_amount_approves(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order(amount=1999.0)

        assert ReconciliationService(db, effects).handle_webhook(_success_event(order.order_id, None)) is not None

    def test_replayed_webhook_fires_once(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order()
        core = ReconciliationService(db, effects)

        assert core.handle_webhook(_success_event(order.order_id)) is not None
        assert core.handle_webhook(_success_event(order.order_id)) is None
        effects.on_approved.assert_called_once()


class TestVerifyPath:
    def test_already_approved_skips_gateway(self, db, effects, gateway, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order(status=STATUS_APPROVED)

        result = ReconciliationService(db, effects).verify_order(order, gateway)

        assert result.success is True
        assert result.status == STATUS_APPROVED
        gateway.fetch_status.assert_not_called()

    def test_successful_payment_approves(self, db, effects, gateway, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order()
        gateway.fetch_status.return_value = [_paid()]

        result = ReconciliationService(db, effects).verify_order(order, gateway)

        assert result.success is True
        assert result.status == STATUS_APPROVED
        effects.on_approved.assert_called_once()

    def test_no_successful_payment_is_pending(self, db, effects, gateway, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order()
        gateway.fetch_status.return_value = [
            GatewayPayment(payment_id="P0", payment_status="FAILED", payment_amount=1999.0)
        ]

        result = ReconciliationService(db, effects).verify_order(order, gateway)

        assert result.success is False
        assert result.status == STATUS_AWAITING_PAYMENT
        assert result.message
        effects.on_approved.assert_not_called()

    def test_gateway_error_is_reported_as_pending(self, db, effects, gateway, make_order):
        from app.core.errors import GatewayError
        from app.reconciliation import ReconciliationService

        order = make_order()
        gateway.fetch_status.side_effect = GatewayError("timeout")

        result = ReconciliationService(db, effects).verify_order(order, gateway)

        assert result.success is False
        assert result.status == STATUS_AWAITING_PAYMENT
        db.refresh(order)
        assert order.status == STATUS_AWAITING_PAYMENT

    def test_amount_mismatch_keeps_status(self, db, effects, gateway, make_order):
        from app.reconciliation import ReconciliationService
        from app.reconciliation.core import MSG_AMOUNT_MISMATCH

        order = make_order(amount=1999.0)
        gateway.fetch_status.return_value = [_paid(1499.0)]

        result = ReconciliationService(db, effects).verify_order(order, gateway)

        assert result.success is False
        assert result.status == STATUS_AWAITING_PAYMENT
        assert result.message == MSG_AMOUNT_MISMATCH
        assert _audit_rows(db, order.order_id)[0].action == "amount_mismatch"
        effects.on_approved.assert_not_called()

    def test_webhook_then_poll_fires_once(self, db, effects, gateway, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order()
        core = ReconciliationService(db, effects)
        gateway.fetch_status.return_value = [_paid()]

        core.handle_webhook(_success_event(order.order_id))
        result = core.verify_order(order, gateway)

        assert result.success is True
        effects.on_approved.assert_called_once()

    def test_poll_then_webhook_fires_once(self, db, effects, gateway, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order()
        core = ReconciliationService(db, effects)
        gateway.fetch_status.return_value = [_paid()]

        core.verify_order(order, gateway)
        replay = core.handle_webhook(_success_event(order.order_id))

        assert replay is None
        effects.on_approved.assert_called_once()

    def test_poll_with_stale_order_object_fires_once(self, session_factory, effects, gateway, make_order):
        """Poll loaded the order before the webhook approved it in another session."""
        from app.reconciliation import ReconciliationService

        order = make_order()
        poll_session, hook_session = session_factory(), session_factory()
        try:
            stale = ReconciliationService(poll_session, effects).get_by_order_id(order.order_id)
            ReconciliationService(hook_session, effects).handle_webhook(_success_event(order.order_id))
            gateway.fetch_status.return_value = [_paid()]

            result = ReconciliationService(poll_session, effects).verify_order(stale, gateway)
        finally:
            poll_session.close()
            hook_session.close()

        assert result.success is True
        assert result.status == STATUS_APPROVED
        effects.on_approved.assert_called_once()


class TestVerifyLinkPath:
    def test_paid_link_approves_with_link_payment_mode(self, db, effects, gateway, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order(order_id="LINK12345678ABCD", amount=2500.0)
        gateway.fetch_link_status.return_value = GatewayLinkStatus(
            link_id=order.order_id,
            link_status="PAID",
            amount_paid=2500.0,
            orders=[GatewayLinkOrder(gateway_order_id="CF999", order_status="PAID", order_amount=2500.0)],
        )

        result = ReconciliationService(db, effects).verify_link(order, gateway)

        assert result.success is True
        db.refresh(order)
        assert order.status == STATUS_APPROVED
        assert order.gateway_payment_id == "CF999"
        assert order.gateway_payment_mode == "payment_link"
        effects.on_approved.assert_called_once()

    def test_unpaid_link_is_pending(self, db, effects, gateway, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order(order_id="LINK12345678ABCE")
        gateway.fetch_link_status.return_value = GatewayLinkStatus(link_id=order.order_id, link_status="ACTIVE")

        result = ReconciliationService(db, effects).verify_link(order, gateway)

        assert result.success is False
        assert result.status == STATUS_AWAITING_PAYMENT
        effects.on_approved.assert_not_called()


class TestAdminPath:
    def test_admin_approval_fires_once(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order(status=STATUS_PENDING, payment_method="upi_manual", utr_number="UTR123456")
        core = ReconciliationService(db, effects)

        core.apply_admin_update(order, STATUS_APPROVED, "checked bank statement", actor_id="admin-test")
        core.apply_admin_update(order, STATUS_APPROVED, None, actor_id="admin-test")

        assert order.status == STATUS_APPROVED
        assert order.notes == "checked bank statement"
        effects.on_approved.assert_called_once()
        changes = [r for r in _audit_rows(db, order.order_id) if r.action == "order_status_change"]
        assert len(changes) == 1

    def test_admin_approval_after_webhook_does_not_fire(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order()
        core = ReconciliationService(db, effects)
        core.handle_webhook(_success_event(order.order_id))

        core.apply_admin_update(order, STATUS_APPROVED, None)

        effects.on_approved.assert_called_once()

    def test_reject_is_applied_directly(self, db, effects, make_order):
        from app.reconciliation import ReconciliationService

        order = make_order(status=STATUS_PENDING)

        ReconciliationService(db, effects).apply_admin_update(order, STATUS_REJECTED, "wrong UTR")

        assert order.status == STATUS_REJECTED
        effects.on_approved.assert_not_called()

    def test_invalid_status_raises(self, db, effects, make_order):
        from app.core.errors import ValidationError
        from app.reconciliation import ReconciliationService

        order = make_order()

        with pytest.raises(ValidationError):
            ReconciliationService(db, effects).apply_admin_update(order, "shipped", None)

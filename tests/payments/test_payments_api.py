"""Tests for checkout session creation, verify polls and admin payment links."""
from app.core.errors import GatewayError
from app.models.order import STATUS_APPROVED, STATUS_AWAITING_PAYMENT, Order
from app.services.cashfree.models import (
    GatewayLink,
    GatewayLinkOrder,
    GatewayLinkStatus,
    GatewayPayment,
    GatewaySession,
)


def _session_body(rank_id: str, **overrides) -> dict:
    body = {
        "name": "Ravi Kumar",
        "phone": "9876543210",
        "email": "ravi@example.com",
        "itemType": "rank",
        "itemRef": rank_id,
    }
    body.update(overrides)
    return body


class TestCreateSession:
    def test_gateway_order_is_persisted_awaiting_payment(self, client, db, gateway, make_rank):
        rank = make_rank(discounted_price=1499)
        gateway.create_session.return_value = GatewaySession(gateway_order_id="CF1", session_handle="session_x")

        resp = client.post("/api/payments/session", json=_session_body(rank.id))

        assert resp.status_code == 201
        data = resp.json()
        assert data["success"] is True
        assert data["sessionHandle"] == "session_x"
        order = db.query(Order).filter(Order.order_id == data["orderId"]).one()
        assert order.status == STATUS_AWAITING_PAYMENT
        assert order.amount == 1499.0
        assert order.gateway_order_id == "CF1"
        _, amount, customer, return_url = gateway.create_session.call_args[0]
        assert amount == 1499.0
        assert customer.phone == "9876543210"
        assert return_url.endswith("/payment/status")

    def test_price_comes_from_catalog_not_client(self, client, gateway, make_rank):
        rank = make_rank(discounted_price=1999)
        gateway.create_session.return_value = GatewaySession(gateway_order_id="CF1", session_handle="s")

        resp = client.post("/api/payments/session", json=_session_body(rank.id, amount=1))

        assert resp.status_code == 201
        assert gateway.create_session.call_args[0][1] == 1999.0

    def test_gateway_failure_leaves_no_order(self, client, db, gateway, make_rank):
        rank = make_rank()
        gateway.create_session.side_effect = GatewayError("Cashfree error 500")

        resp = client.post("/api/payments/session", json=_session_body(rank.id))

        assert resp.status_code == 500
        assert db.query(Order).count() == 0

    def test_email_is_required(self, client, gateway, make_rank):
        rank = make_rank()

        resp = client.post("/api/payments/session", json=_session_body(rank.id, email=""))

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email is required for online payment"
        gateway.create_session.assert_not_called()

    def test_unknown_rank_is_404(self, client, gateway):
        resp = client.post("/api/payments/session", json=_session_body("missing-rank"))

        assert resp.status_code == 404


class TestVerifyPoll:
    def test_unknown_order_is_404(self, client):
        assert client.get("/api/payments/verify/ORDNOPE").status_code == 404

    def test_successful_payment_approves(self, client, db, effects, gateway, make_order):
        order = make_order()
        gateway.fetch_status.return_value = [
            GatewayPayment(payment_id="P1", payment_status="SUCCESS", payment_amount=1999.0, payment_mode="upi")
        ]

        resp = client.get(f"/api/payments/verify/{order.order_id}")

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "orderId": order.order_id,
            "status": STATUS_APPROVED,
            "planName": order.plan_name,
            "amount": 1999.0,
        }
        effects.on_approved.assert_called_once()

    def test_repeated_polls_fire_once(self, client, effects, gateway, make_order):
        order = make_order()
        gateway.fetch_status.return_value = [
            GatewayPayment(payment_id="P1", payment_status="SUCCESS", payment_amount=1999.0)
        ]

        for _ in range(3):
            assert client.get(f"/api/payments/verify/{order.order_id}").json()["success"] is True

        effects.on_approved.assert_called_once()

    def test_gateway_error_reports_pending(self, client, gateway, make_order):
        order = make_order()
        gateway.fetch_status.side_effect = GatewayError("Cashfree temporarily unavailable (circuit open)")

        resp = client.get(f"/api/payments/verify/{order.order_id}")

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is False
        assert data["status"] == STATUS_AWAITING_PAYMENT
        assert "message" in data

    def test_amount_mismatch_reports_failure(self, client, db, gateway, make_order):
        order = make_order(amount=1999.0)
        gateway.fetch_status.return_value = [
            GatewayPayment(payment_id="P1", payment_status="SUCCESS", payment_amount=1499.0)
        ]

        resp = client.get(f"/api/payments/verify/{order.order_id}")

        assert resp.status_code == 200
        assert resp.json()["success"] is False
        db.refresh(order)
        assert order.status == STATUS_AWAITING_PAYMENT


class TestPaymentLinks:
    def _link_body(self, **overrides):
        body = {
            "amount": 2500,
            "customerName": "Asha",
            "customerPhone": "9123456780",
            "customerEmail": "asha@example.com",
            "expiryDays": 3,
        }
        body.update(overrides)
        return body

    def test_requires_admin(self, client):
        assert client.post("/api/payments/link", json=self._link_body()).status_code in (401, 403)

    def test_creates_link_order(self, client, db, gateway, admin_headers):
        gateway.create_payment_link.return_value = GatewayLink(
            link_id="LINKX", link_url="https://pay.example/l/x", expires_at="2026-10-22T00:00:00+05:30"
        )

        resp = client.post("/api/payments/link", json=self._link_body(), headers=admin_headers)

        assert resp.status_code == 201
        data = resp.json()
        assert data["linkUrl"] == "https://pay.example/l/x"
        assert data["linkId"].startswith("LINK")
        order = db.query(Order).filter(Order.order_id == data["linkId"]).one()
        assert order.amount == 2500.0
        assert order.plan_name == "Premium Rank Payment"
        assert order.status == STATUS_AWAITING_PAYMENT

    def test_invalid_amount_is_400(self, client, gateway, admin_headers):
        resp = client.post("/api/payments/link", json=self._link_body(amount=0), headers=admin_headers)

        assert resp.status_code == 400
        gateway.create_payment_link.assert_not_called()

    def test_verify_link_approves_paid_link(self, client, db, effects, gateway, make_order):
        order = make_order(order_id="LINK87654321WXYZ", amount=2500.0)
        gateway.fetch_link_status.return_value = GatewayLinkStatus(
            link_id=order.order_id,
            link_status="PAID",
            orders=[GatewayLinkOrder(gateway_order_id="CF42", order_status="PAID", order_amount=2500.0)],
        )

        resp = client.get(f"/api/payments/verify-link/{order.order_id}")

        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["status"] == STATUS_APPROVED
        effects.on_approved.assert_called_once()

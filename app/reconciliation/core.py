"""
Order reconciliation core.

Webhook, client verify poll, payment-link verify poll and admin manual approval all
converge on approve_order(). The transition is a single conditional UPDATE
(status != 'approved'); rowcount tells the caller whether it won. Only the winner
runs ApprovalEffects, so notification and real-time event happen once per order.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.errors import AmountMismatchError, GatewayError, NotFoundError, ValidationError
from app.models.order import ORDER_STATUSES, STATUS_APPROVED, Order
from app.reconciliation.amount import DEFAULT_TOLERANCE, amount_matches
from app.reconciliation.effects import ApprovalEffects
from app.reconciliation.models import (
    SOURCE_ADMIN,
    SOURCE_VERIFY,
    SOURCE_VERIFY_LINK,
    SOURCE_WEBHOOK,
    VerifyResult,
    WebhookEvent,
)
from app.services.audit.service import AuditService
from app.services.cashfree.client import CashfreeClient
from app.utils.metrics import amount_mismatch_total, approval_race_lost_total, orders_approved_total

logger = logging.getLogger(__name__)

MSG_PROCESSING = "Payment is being processed. You will receive confirmation shortly."
MSG_LINK_PROCESSING = "Payment is being processed."
MSG_AMOUNT_MISMATCH = "Payment amount mismatch. Please contact support."


class ReconciliationService:
    def __init__(
        self,
        db: Session,
        effects: ApprovalEffects,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> None:
        self.db = db
        self.effects = effects
        self.tolerance = tolerance

    def get_by_order_id(self, order_id: str) -> Order | None:
        return self.db.query(Order).filter(Order.order_id == order_id).one_or_none()

    def approve_order(
        self,
        order_id: str,
        payment_id: str | None = None,
        payment_status: str | None = None,
        payment_mode: str | None = None,
        observed_amount: float | None = None,
        source: str = SOURCE_WEBHOOK,
    ) -> Order | None:
        """
        Move the order to approved if it is not approved yet.
        Returns the updated order when this call made the transition, None when another caller already did.
        Payment fields left as None keep their stored values.
        """
        values: dict = {"status": STATUS_APPROVED, "updated_at": datetime.now(timezone.utc)}
        if payment_id is not None:
            values["gateway_payment_id"] = str(payment_id)
        if payment_status is not None:
            values["gateway_payment_status"] = payment_status
        if payment_mode is not None:
            values["gateway_payment_mode"] = payment_mode

        result = self.db.execute(
            update(Order)
            .where(Order.order_id == order_id, Order.status != STATUS_APPROVED)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        won = result.rowcount > 0
        self.db.commit()

        if not won:
            approval_race_lost_total.labels(source=source).inc()
            logger.info("order_already_approved", extra={"order_id": order_id, "event_type": source})
            return None

        order = self.get_by_order_id(order_id)
        self.db.refresh(order)
        orders_approved_total.labels(source=source).inc()
        logger.info(
            "order_approved",
            extra={
                "order_id": order_id,
                "payment_id": payment_id,
                "payment_status": payment_status,
                "payment_mode": payment_mode,
                "observed_amount": observed_amount,
                "event_type": source,
            },
        )
        self.effects.on_approved(order)
        return order

    def ensure_amount(
        self,
        order: Order,
        observed_amount: float | None,
        source: str,
        payment_id: str | None = None,
    ) -> None:
        """Raise AmountMismatchError (after audit, metric and error log) if the gateway amount differs."""
        if amount_matches(order.amount, observed_amount, self.tolerance):
            return
        amount_mismatch_total.labels(source=source).inc()
        logger.error(
            "amount_mismatch",
            extra={
                "order_id": order.order_id,
                "payment_id": payment_id,
                "expected_amount": order.amount,
                "observed_amount": observed_amount,
                "event_type": source,
            },
        )
        AuditService(self.db).log_amount_mismatch(
            order.order_id, order.amount, observed_amount, source, payment_id
        )
        raise AmountMismatchError(
            "Amount mismatch",
            {"order_id": order.order_id, "expected": order.amount, "observed": observed_amount},
        )

    def handle_webhook(self, event: WebhookEvent) -> Order | None:
        """
        Apply a verified webhook event. Non-success event types are ignored.
        Raises NotFoundError for an unknown order and AmountMismatchError on amount mismatch.
        """
        if not event.is_payment_success:
            logger.info("webhook_event_ignored", extra={"order_id": event.order_id, "event_type": event.event_type})
            return None
        order = self.get_by_order_id(event.order_id)
        if order is None:
            logger.error("webhook_order_not_found", extra={"order_id": event.order_id})
            raise NotFoundError("Order not found", {"order_id": event.order_id})
        self.ensure_amount(order, event.payment_amount, SOURCE_WEBHOOK, event.payment_id)
        return self.approve_order(
            event.order_id,
            event.payment_id,
            event.payment_status,
            event.payment_mode,
            event.payment_amount,
            source=SOURCE_WEBHOOK,
        )

    def verify_order(self, order: Order, gateway: CashfreeClient) -> VerifyResult:
        """Client poll after checkout redirect. Gateway failures are reported as still pending."""
        if order.status == STATUS_APPROVED:
            return VerifyResult(success=True, status=order.status)

        try:
            payments = gateway.fetch_status(order.order_id)
        except GatewayError as e:
            logger.warning("verify_poll_gateway_failed", extra={"order_id": order.order_id, "error": e.message})
            return VerifyResult(success=False, status=order.status, message=MSG_PROCESSING)

        payment = next((p for p in payments if p.succeeded), None)
        if payment is None:
            return VerifyResult(success=False, status=order.status, message=MSG_PROCESSING)

        try:
            self.ensure_amount(order, payment.payment_amount, SOURCE_VERIFY, payment.payment_id)
        except AmountMismatchError:
            return VerifyResult(success=False, status=order.status, message=MSG_AMOUNT_MISMATCH)

        self.approve_order(
            order.order_id,
            payment.payment_id,
            payment.payment_status,
            payment.payment_mode,
            payment.payment_amount,
            source=SOURCE_VERIFY,
        )
        return VerifyResult(success=True, status=STATUS_APPROVED)

    def verify_link(self, order: Order, gateway: CashfreeClient) -> VerifyResult:
        """Poll for a payment-link order; approval uses the stored amount when the link is PAID."""
        if order.status == STATUS_APPROVED:
            return VerifyResult(success=True, status=order.status)

        try:
            link = gateway.fetch_link_status(order.order_id)
        except GatewayError as e:
            logger.warning(
                "verify_link_gateway_failed",
                extra={"link_id": order.order_id, "order_id": order.order_id, "error": e.message},
            )
            return VerifyResult(success=False, status=order.status, message=MSG_LINK_PROCESSING)

        paid_order = link.first_paid_order() if link.paid else None
        if paid_order is None:
            return VerifyResult(success=False, status=order.status, message=MSG_LINK_PROCESSING)

        try:
            self.ensure_amount(order, paid_order.order_amount, SOURCE_VERIFY_LINK, paid_order.gateway_order_id)
        except AmountMismatchError:
            return VerifyResult(success=False, status=order.status, message=MSG_AMOUNT_MISMATCH)

        self.approve_order(
            order.order_id,
            paid_order.gateway_order_id or link.link_id,
            "SUCCESS",
            "payment_link",
            order.amount,
            source=SOURCE_VERIFY_LINK,
        )
        return VerifyResult(success=True, status=STATUS_APPROVED)

    def apply_admin_update(
        self,
        order: Order,
        status: str | None,
        notes: str | None,
        actor_id: str | None = None,
    ) -> Order:
        """
        Admin PUT on an order. Moving into approved goes through approve_order,
        so effects fire only if the order was not already approved.
        """
        if status is not None and status not in ORDER_STATUSES:
            raise ValidationError("Invalid status", {"status": status})

        previous = order.status
        if notes is not None:
            order.notes = notes

        if status == STATUS_APPROVED:
            self.db.commit()
            approved = self.approve_order(order.order_id, source=SOURCE_ADMIN)
            if approved is not None and previous != STATUS_APPROVED:
                AuditService(self.db).log_status_change(order.order_id, actor_id, previous, STATUS_APPROVED)
            self.db.refresh(order)
            return order

        if status is not None and status != previous:
            order.status = status
        self.db.commit()
        self.db.refresh(order)
        if status is not None and status != previous:
            logger.info(
                "order_status_changed",
                extra={"order_id": order.order_id, "old_status": previous, "new_status": status},
            )
            AuditService(self.db).log_status_change(order.order_id, actor_id, previous, status)
        return order

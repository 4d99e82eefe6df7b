"""
One-time side effects of an approval: notification email (Celery) and admin real-time event.
Only the caller that won the approval transition runs these.
"""
import logging
from typing import Any, Callable

from app.core.config import Settings
from app.models.order import Order
from app.schemas.orders import order_event_payload
from app.services.realtime.publisher import EVENT_NEW_ORDER, AdminEventPublisher
from app.utils.metrics import notifications_total
from app.workers.tasks.notify_order import send_order_approved_email

logger = logging.getLogger(__name__)


class ApprovalEffects:
    def __init__(
        self,
        publisher: AdminEventPublisher | None,
        enqueue_approved_email: Callable[[str], Any],
    ) -> None:
        self._publisher = publisher
        self._enqueue_approved_email = enqueue_approved_email

    def on_approved(self, order: Order) -> None:
        """Never raises: approval is already committed."""
        self._schedule_email(order)
        if self._publisher is not None:
            self._publisher.publish(EVENT_NEW_ORDER, order_event_payload(order))

    def _schedule_email(self, order: Order) -> None:
        if not order.email:
            notifications_total.labels(template="order_approved", outcome="skipped").inc()
            logger.info("approval_email_skipped_no_email", extra={"order_id": order.order_id})
            return
        try:
            self._enqueue_approved_email(order.id)
        except Exception as e:
            notifications_total.labels(template="order_approved", outcome="enqueue_failed").inc()
            logger.error(
                "approval_email_enqueue_failed",
                extra={"order_id": order.order_id, "error": str(e)},
            )
            return
        logger.info("approval_email_enqueued", extra={"order_id": order.order_id})


def build_approval_effects(config: Settings) -> ApprovalEffects:
    return ApprovalEffects(
        publisher=AdminEventPublisher.from_url(config.redis_url, config.admin_events_channel),
        enqueue_approved_email=send_order_approved_email.delay,
    )

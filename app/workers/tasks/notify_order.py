"""
Order notification emails, sent outside the request path.
Failures are logged and counted; they never affect order status and are not retried.
"""
import logging

from sqlalchemy.orm import Session

from app.core.celery_app import celery_app
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.order import Order
from app.services.notifications.service import OrderNotificationService
from app.utils.metrics import notifications_total

logger = logging.getLogger("notify_order")


def _run(template: str, order_pk: str, send) -> dict:
    db: Session = SessionLocal()
    try:
        order = db.query(Order).filter(Order.id == order_pk).one_or_none()
        if order is None:
            logger.warning("notify_order_not_found", extra={"order_id": order_pk})
            return {"ok": False, "error": "order_not_found"}
        try:
            sent = send(OrderNotificationService(db, settings), order)
        except Exception as e:
            notifications_total.labels(template=template, outcome="failed").inc()
            logger.exception("notify_order_failed", extra={"order_id": order.order_id, "error": str(e)})
            return {"ok": False, "error": str(e)}
        outcome = "sent" if sent else "skipped"
        notifications_total.labels(template=template, outcome=outcome).inc()
        return {"ok": True, "outcome": outcome}
    finally:
        db.close()


@celery_app.task(name="app.workers.tasks.notify_order.send_order_approved_email")
def send_order_approved_email(order_pk: str) -> dict:
    """Approval email with guarantee certificate. Enqueued once, by the approval winner."""
    return _run("order_approved", order_pk, lambda svc, order: svc.send_order_approved(order))


@celery_app.task(name="app.workers.tasks.notify_order.send_order_placed_email")
def send_order_placed_email(order_pk: str) -> dict:
    return _run("order_placed", order_pk, lambda svc, order: svc.send_order_placed(order))

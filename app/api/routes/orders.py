"""
Orders API: public manual-UPI submission and status check; admin list/get/update/delete.
Admin PUT with status=approved goes through the reconciliation core (one-time effects).
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps import get_reconciliation, get_settings
from app.core.config import Settings
from app.db.session import get_db
from app.reconciliation import ReconciliationService
from app.schemas.orders import OrderAdminUpdate, OrderCheckIn, OrderCreateIn, order_to_item
from app.services.auth.jwt import get_current_user
from app.services.orders.service import OrderService
from app.workers.tasks.notify_order import send_order_placed_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", status_code=201)
def create_order(
    payload: OrderCreateIn,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    order = OrderService(db).create_manual_order(payload, config.utr_min_length)
    if order.email:
        try:
            send_order_placed_email.delay(order.id)
        except Exception as e:
            logger.error("order_placed_email_enqueue_failed", extra={"order_id": order.order_id, "error": str(e)})
    return {
        "message": "Order submitted successfully! We will verify your payment shortly.",
        "orderId": order.order_id,
        "planName": order.plan_name,
        "amount": order.amount,
        "status": order.status,
    }


@router.post("/check")
def check_order(payload: OrderCheckIn, db: Session = Depends(get_db)):
    order = OrderService(db).check(payload.order_id, payload.phone)
    return {
        "orderId": order.order_id,
        "planName": order.plan_name,
        "amount": order.amount,
        "status": order.status,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
    }


@router.get("", dependencies=[Depends(get_current_user)])
def list_orders(
    status: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return [order_to_item(o) for o in OrderService(db).list_orders(status=status, limit=limit)]


@router.get("/{order_ref}", dependencies=[Depends(get_current_user)])
def get_order(order_ref: str, db: Session = Depends(get_db)):
    order = OrderService(db).get(order_ref)
    if not order:
        raise HTTPException(404, "Order not found")
    return order_to_item(order)


@router.put("/{order_ref}")
def update_order(
    order_ref: str,
    payload: OrderAdminUpdate,
    db: Session = Depends(get_db),
    core: ReconciliationService = Depends(get_reconciliation),
    current_user: dict = Depends(get_current_user),
):
    order = OrderService(db).get(order_ref)
    if not order:
        raise HTTPException(404, "Order not found")
    order = core.apply_admin_update(order, payload.status, payload.notes, actor_id=current_user.get("adminId"))
    return {
        "message": "Order updated",
        "order": {"id": order.id, "orderId": order.order_id, "status": order.status},
    }


@router.delete("/{order_ref}", dependencies=[Depends(get_current_user)])
def delete_order(order_ref: str, db: Session = Depends(get_db)):
    if not OrderService(db).delete(order_ref):
        raise HTTPException(404, "Order not found")
    return {"message": "Order deleted"}

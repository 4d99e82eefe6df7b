"""
Cashfree payments API: checkout session, webhook, verify polls, admin payment links.
Webhook and both verify polls converge on ReconciliationService.approve_order.
"""
import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.deps import get_gateway, get_reconciliation, get_settings, raw_body
from app.core.config import Settings
from app.core.errors import OrderError, ValidationError
from app.db.session import get_db
from app.reconciliation import ReconciliationService, parse_webhook_event
from app.schemas.orders import PaymentLinkIn, SessionCreateIn, verify_response
from app.services.auth.jwt import get_current_user
from app.services.cashfree.client import CashfreeClient
from app.services.cashfree.webhook import authenticate_webhook
from app.services.orders.service import OrderService
from app.utils.metrics import webhook_events_total

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/session", status_code=201)
def create_session(
    payload: SessionCreateIn,
    db: Session = Depends(get_db),
    gateway: CashfreeClient = Depends(get_gateway),
    config: Settings = Depends(get_settings),
):
    """Create the gateway checkout first; the local order exists only if that succeeded."""
    return_url = f"{config.frontend_url.rstrip('/')}/payment/status"
    order, session = OrderService(db).create_gateway_order(payload, gateway, return_url)
    return {
        "success": True,
        "orderId": order.order_id,
        "sessionHandle": session.session_handle,
    }


@router.post("/webhook")
def cashfree_webhook(
    body: bytes = Depends(raw_body),
    x_webhook_timestamp: str | None = Header(None),
    x_webhook_signature: str | None = Header(None),
    db: Session = Depends(get_db),
    gateway: CashfreeClient = Depends(get_gateway),
    core: ReconciliationService = Depends(get_reconciliation),
    config: Settings = Depends(get_settings),
):
    """
    200 processed/duplicate/ignored, 401 signature, 400 malformed or amount mismatch,
    404 unknown order, 500 anything else (the gateway retries on 5xx).
    """
    event_type = "unknown"
    try:
        authenticate_webhook(config, gateway, x_webhook_timestamp, body, x_webhook_signature)
        try:
            payload = json.loads(body or b"null")
        except ValueError:
            raise ValidationError("Invalid payload")
        event = parse_webhook_event(payload)
        event_type = event.event_type or "unknown"
        logger.info("webhook_received", extra={"order_id": event.order_id, "event_type": event_type})

        approved = core.handle_webhook(event)
    except OrderError as e:
        webhook_events_total.labels(event_type=event_type, outcome=type(e).__name__).inc()
        raise
    except Exception as e:
        db.rollback()
        webhook_events_total.labels(event_type=event_type, outcome="error").inc()
        logger.exception("webhook_processing_failed", extra={"event_type": event_type, "error": str(e)})
        return JSONResponse(status_code=500, content={"detail": "Webhook processing failed"})

    if not event.is_payment_success:
        outcome = "ignored"
    elif approved is None:
        outcome = "duplicate"
    else:
        outcome = "approved"
    webhook_events_total.labels(event_type=event_type, outcome=outcome).inc()
    return {"message": "Webhook processed", "outcome": outcome}


@router.get("/verify/{order_id}")
def verify_payment(
    order_id: str,
    gateway: CashfreeClient = Depends(get_gateway),
    core: ReconciliationService = Depends(get_reconciliation),
):
    """Client poll after the checkout redirect. Gateway errors are reported as still pending."""
    order = core.get_by_order_id(order_id)
    if not order:
        raise HTTPException(404, "Order not found")
    result = core.verify_order(order, gateway)
    return verify_response(order, result.success, result.status, result.message)


@router.post("/link", status_code=201, dependencies=[Depends(get_current_user)])
def create_payment_link(
    payload: PaymentLinkIn,
    db: Session = Depends(get_db),
    gateway: CashfreeClient = Depends(get_gateway),
    config: Settings = Depends(get_settings),
):
    return_url = f"{config.frontend_url.rstrip('/')}/payment/link-status"
    order, link = OrderService(db).create_payment_link(
        payload, gateway, return_url, config.payment_link_default_purpose
    )
    return {
        "success": True,
        "linkId": order.order_id,
        "linkUrl": link.link_url,
        "amount": order.amount,
        "expiresAt": link.expires_at,
    }


@router.get("/verify-link/{link_id}")
def verify_payment_link(
    link_id: str,
    gateway: CashfreeClient = Depends(get_gateway),
    core: ReconciliationService = Depends(get_reconciliation),
):
    order = core.get_by_order_id(link_id)
    if not order:
        raise HTTPException(404, "Order not found")
    result = core.verify_link(order, gateway)
    return verify_response(order, result.success, result.status, result.message)

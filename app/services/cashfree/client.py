"""
Cashfree PG client using httpx sync client.
Every call is bounded by cashfree_timeout_seconds and guarded by the "cashfree" circuit breaker.
"""
import base64
import hashlib
import hmac
import logging
import time
from typing import Any

import httpx
import pybreaker

from app.core.config import Settings
from app.core.errors import GatewayError
from app.services.cashfree.models import (
    Customer,
    GatewayLink,
    GatewayLinkOrder,
    GatewayLinkStatus,
    GatewayPayment,
    GatewaySession,
)
from app.services.circuit_breaker import get_circuit_breaker
from app.utils.metrics import gateway_request_duration_seconds, gateway_requests_total


logger = logging.getLogger(__name__)


def _is_client_error(exc: BaseException) -> bool:
    """4xx answers mean the gateway is up; they must not trip the breaker."""
    return isinstance(exc, GatewayError) and exc.http_status is not None and exc.http_status < 500


def compute_webhook_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    """base64(HMAC-SHA256(secret, timestamp + raw body))."""
    message = timestamp.encode("utf-8") + raw_body
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class CashfreeClient:
    """
    Sync Cashfree client.
    Configuration is passed in explicitly; transport is injectable for tests.
    """

    def __init__(self, config: Settings, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config
        self._base_url = config.cashfree_base_url
        self._transport = transport
        self._client: httpx.Client | None = None
        self._breaker = get_circuit_breaker("cashfree", exclude=[_is_client_error])

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._config.cashfree_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {
            "x-client-id": self._config.cashfree_app_id,
            "x-client-secret": self._config.cashfree_secret_key,
            "x-api-version": self._config.cashfree_api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _record_request(self, operation: str, status: str, duration: float) -> None:
        gateway_requests_total.labels(operation=operation, status=status).inc()
        gateway_request_duration_seconds.labels(operation=operation).observe(duration)

    def _send(self, method: str, path: str, payload: dict | None) -> Any:
        try:
            resp = self.client.request(method, path, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise GatewayError(f"Cashfree request failed: {type(e).__name__}", {"path": path}) from e
        if resp.status_code >= 400:
            try:
                message = resp.json().get("message") or resp.text
            except ValueError:
                message = resp.text
            raise GatewayError(
                f"Cashfree error {resp.status_code}: {message}",
                {"path": path},
                http_status=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise GatewayError("Cashfree returned invalid JSON", {"path": path}) from e

    def _api_call(self, operation: str, method: str, path: str, payload: dict | None = None) -> Any:
        """Make API call to Cashfree through the circuit breaker."""
        start = time.time()
        try:
            result = self._breaker.call(self._send, method, path, payload)
        except pybreaker.CircuitBreakerError as e:
            self._record_request(operation, "circuit_open", time.time() - start)
            raise GatewayError("Cashfree temporarily unavailable (circuit open)") from e
        except GatewayError as e:
            self._record_request(operation, "error", time.time() - start)
            logger.warning(
                "cashfree_request_failed",
                extra={"event_type": operation, "error": e.message, "status_code": e.http_status},
            )
            raise
        self._record_request(operation, "success", time.time() - start)
        return result

    def create_session(
        self,
        order_id: str,
        amount: float,
        customer: Customer,
        return_url: str,
    ) -> GatewaySession:
        """Create a gateway order; the returned session handle opens the hosted checkout."""
        payload = {
            "order_id": order_id,
            "order_amount": amount,
            "order_currency": self._config.payment_currency,
            "customer_details": {
                "customer_id": customer.customer_id,
                "customer_name": customer.name,
                "customer_email": customer.email,
                "customer_phone": customer.phone,
            },
            "order_meta": {"return_url": return_url + "?order_id={order_id}"},
        }
        data = self._api_call("create_order", "POST", "/orders", payload) or {}
        session_id = data.get("payment_session_id")
        if not session_id:
            raise GatewayError("No payment_session_id in Cashfree response", {"order_id": order_id})
        return GatewaySession(
            gateway_order_id=str(data.get("cf_order_id") or order_id),
            session_handle=session_id,
        )

    def create_payment_link(
        self,
        link_id: str,
        amount: float,
        purpose: str,
        customer: Customer,
        return_url: str,
        expiry: str | None = None,
    ) -> GatewayLink:
        payload: dict[str, Any] = {
            "link_id": link_id,
            "link_amount": amount,
            "link_currency": self._config.payment_currency,
            "link_purpose": purpose,
            "customer_details": {
                "customer_name": customer.name,
                "customer_email": customer.email,
                "customer_phone": customer.phone,
            },
            "link_notify": {"send_sms": False, "send_email": False},
            "link_meta": {"return_url": return_url + f"?link_id={link_id}"},
        }
        if expiry:
            payload["link_expiry_time"] = expiry
        data = self._api_call("create_link", "POST", "/links", payload) or {}
        link_url = data.get("link_url")
        if not link_url:
            raise GatewayError("No link_url in Cashfree response", {"link_id": link_id})
        return GatewayLink(
            link_id=str(data.get("link_id") or link_id),
            link_url=link_url,
            expires_at=data.get("link_expiry_time"),
        )

    def fetch_status(self, order_id: str) -> list[GatewayPayment]:
        """Payments recorded against a gateway order. Empty list means not paid yet."""
        data = self._api_call("fetch_payments", "GET", f"/orders/{order_id}/payments")
        if not isinstance(data, list):
            return []
        payments = []
        for item in data:
            if not isinstance(item, dict):
                continue
            payments.append(
                GatewayPayment(
                    payment_id=str(item.get("cf_payment_id") or ""),
                    payment_status=str(item.get("payment_status") or ""),
                    payment_amount=_to_float(item.get("payment_amount")),
                    payment_mode=item.get("payment_group"),
                )
            )
        return payments

    def fetch_link_status(self, link_id: str) -> GatewayLinkStatus:
        data = self._api_call("fetch_link", "GET", f"/links/{link_id}") or {}
        link_status = str(data.get("link_status") or "")
        orders: list[GatewayLinkOrder] = []
        if link_status == "PAID":
            raw_orders = self._api_call("fetch_link_orders", "GET", f"/links/{link_id}/orders")
            for item in raw_orders if isinstance(raw_orders, list) else []:
                orders.append(
                    GatewayLinkOrder(
                        gateway_order_id=str(item.get("cf_order_id") or item.get("order_id") or "") or None,
                        order_status=item.get("order_status"),
                        order_amount=_to_float(item.get("order_amount")),
                    )
                )
        return GatewayLinkStatus(
            link_id=str(data.get("link_id") or link_id),
            link_status=link_status,
            amount_paid=_to_float(data.get("link_amount_paid")),
            orders=orders,
        )

    def verify_webhook_signature(self, timestamp: str, raw_body: bytes, signature: str) -> bool:
        """Constant-time check of x-webhook-signature against the raw request bytes."""
        secret = self._config.cashfree_webhook_secret
        if not secret or not timestamp or not signature:
            return False
        expected = compute_webhook_signature(secret, timestamp, raw_body)
        return hmac.compare_digest(expected, signature)

"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response


# Counters
orders_created_total = Counter(
    "orders_created_total",
    "Total number of orders created",
    ["payment_method"],
)

orders_approved_total = Counter(
    "orders_approved_total",
    "Total number of orders moved to approved",
    ["source"],  # webhook, verify, verify_link, admin
)

approval_race_lost_total = Counter(
    "approval_race_lost_total",
    "Approval attempts that found the order already approved",
    ["source"],
)

amount_mismatch_total = Counter(
    "amount_mismatch_total",
    "Gateway payments whose amount differs from the stored order amount",
    ["source"],
)

duplicate_utr_total = Counter(
    "duplicate_utr_total",
    "Manual orders rejected for a reused UTR number",
)

webhook_events_total = Counter(
    "webhook_events_total",
    "Gateway webhook deliveries by outcome",
    ["event_type", "outcome"],
)

gateway_requests_total = Counter(
    "gateway_requests_total",
    "Total payment gateway API requests",
    ["operation", "status"],
)

notifications_total = Counter(
    "notifications_total",
    "Notification emails by template and outcome",
    ["template", "outcome"],  # sent, skipped, failed, enqueue_failed
)

realtime_publish_failures_total = Counter(
    "realtime_publish_failures_total",
    "Failed publishes of admin real-time events",
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

# Histograms
gateway_request_duration_seconds = Histogram(
    "gateway_request_duration_seconds",
    "Payment gateway API request duration",
    ["operation"],
    buckets=[0.1, 0.5, 1, 2, 5, 10],
)

# Gauges
admin_ws_connections = Gauge(
    "admin_ws_connections",
    "Connected admin WebSocket clients",
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )

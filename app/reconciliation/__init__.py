"""
Order reconciliation: exactly-once approval across webhook, verify polls and admin action.
The conditional UPDATE in ReconciliationService.approve_order is the single source of truth.
"""
from app.reconciliation.amount import amount_matches
from app.reconciliation.core import ReconciliationService
from app.reconciliation.effects import ApprovalEffects, build_approval_effects
from app.reconciliation.models import (
    VerifyResult,
    WebhookEvent,
    parse_webhook_event,
)

__all__ = [
    "ApprovalEffects",
    "ReconciliationService",
    "VerifyResult",
    "WebhookEvent",
    "amount_matches",
    "build_approval_effects",
    "parse_webhook_event",
]

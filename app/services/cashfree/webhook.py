"""
Webhook authentication policy.
Production: a secret must be configured and every delivery must carry a valid signature.
Sandbox: deliveries are checked only when both a secret and a signature are present.
"""
import logging

from app.core.config import Settings
from app.core.errors import ConfigurationError, SignatureError
from app.services.cashfree.client import CashfreeClient

logger = logging.getLogger(__name__)


def authenticate_webhook(
    config: Settings,
    gateway: CashfreeClient,
    timestamp: str | None,
    raw_body: bytes,
    signature: str | None,
) -> bool:
    """Returns True if the signature was verified, False if verification was bypassed (sandbox)."""
    if config.is_production:
        if not config.cashfree_webhook_secret:
            logger.critical("webhook_secret_not_configured")
            raise ConfigurationError("Webhook not configured")
        if not raw_body or not signature or not timestamp:
            logger.error("webhook_signature_missing")
            raise SignatureError("Missing signature")
        if not gateway.verify_webhook_signature(timestamp, raw_body, signature):
            logger.error("webhook_signature_invalid")
            raise SignatureError("Invalid signature")
        return True

    if config.cashfree_webhook_secret and raw_body and signature:
        if not gateway.verify_webhook_signature(timestamp or "", raw_body, signature):
            logger.error("webhook_signature_invalid", extra={"event_type": "sandbox"})
            raise SignatureError("Invalid signature")
        return True

    logger.info("webhook_signature_bypassed", extra={"event_type": "sandbox"})
    return False

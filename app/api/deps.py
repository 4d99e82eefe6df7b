"""
Request-scoped wiring: gateway client, approval effects, reconciliation core, raw request body.
Overridden in tests through app.dependency_overrides.
"""
from collections.abc import Iterator
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import Settings, settings
from app.db.session import get_db
from app.reconciliation import ApprovalEffects, ReconciliationService, build_approval_effects
from app.services.cashfree.client import CashfreeClient


def get_settings() -> Settings:
    return settings


def get_gateway(config: Settings = Depends(get_settings)) -> Iterator[CashfreeClient]:
    client = CashfreeClient(config)
    try:
        yield client
    finally:
        client.close()


@lru_cache(maxsize=1)
def _shared_effects() -> ApprovalEffects:
    return build_approval_effects(settings)


def get_approval_effects() -> ApprovalEffects:
    return _shared_effects()


def get_reconciliation(
    db: Session = Depends(get_db),
    effects: ApprovalEffects = Depends(get_approval_effects),
    config: Settings = Depends(get_settings),
) -> ReconciliationService:
    return ReconciliationService(db, effects, tolerance=config.amount_tolerance)


async def raw_body(request: Request) -> bytes:
    """Exact request bytes; webhook signatures are computed over these, not re-serialized JSON."""
    return await request.body()

from typing import Any

from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog


class AuditService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def log(
        self,
        actor_type: str,
        actor_id: str | None,
        action: str,
        entity_type: str,
        entity_id: str | None,
        payload: dict[str, Any] | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            actor_type=actor_type,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=payload or {},
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def list_for_entity(self, entity_type: str, entity_id: str) -> list[AuditLog]:
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.created_at.desc())
            .all()
        )

    def log_amount_mismatch(
        self,
        order_id: str,
        expected: float,
        observed: float | None,
        source: str,
        payment_id: str | None = None,
    ) -> AuditLog:
        """Kept for manual investigation; the order itself is left untouched."""
        return self.log(
            actor_type="gateway",
            actor_id=source,
            action="amount_mismatch",
            entity_type="order",
            entity_id=order_id,
            payload={"expected": expected, "observed": observed, "payment_id": payment_id},
        )

    def log_status_change(self, order_id: str, actor_id: str | None, old_status: str, new_status: str) -> AuditLog:
        return self.log(
            actor_type="admin",
            actor_id=actor_id,
            action="order_status_change",
            entity_type="order",
            entity_id=order_id,
            payload={"old_status": old_status, "new_status": new_status},
        )

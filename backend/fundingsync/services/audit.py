from __future__ import annotations

from sqlalchemy.orm import Session

from fundingsync.models.audit import AuditLog


def log_audit(
    db: Session,
    *,
    actor_uid: str,
    action: str,
    entity_type: str,
    entity_id: str,
    before_state: dict | None = None,
    after_state: dict | None = None,
) -> AuditLog:
    log = AuditLog(
        actor_uid=actor_uid,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before_state=before_state,
        after_state=after_state,
    )
    db.add(log)
    return log

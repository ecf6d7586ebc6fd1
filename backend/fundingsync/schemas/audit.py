from datetime import datetime

from pydantic import BaseModel


class AuditLogOut(BaseModel):
    id: int
    actor_uid: str
    action: str
    entity_type: str
    entity_id: str
    before_state: dict | None
    after_state: dict | None
    created_at: datetime

from __future__ import annotations
from typing import Any, Optional

from extensions import db
from models import AuditLog

def record_event(action: str, entity: str, entity_id: Optional[int] = None,
                 teacher_id: Optional[int] = None, **payload: Any) -> AuditLog:
    """Stage an audit row in the current session; the caller's commit persists it."""
    row = AuditLog(
        teacher_id=teacher_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        payload=payload or None,
    )
    db.session.add(row)
    return row

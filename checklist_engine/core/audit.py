import logging
from typing import Any

from sqlalchemy.orm import Session

from checklist_engine.models.audit_event import AuditEvent

logger = logging.getLogger(__name__)


def log_event(
    *,
    db: Session,
    actor_email: str | None,
    action: str,
    entity_type: str,
    entity_id: str,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent:
    """Queue an audit row on the request session. The caller commits."""
    event = AuditEvent(
        actor_email=actor_email,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
    )
    db.add(event)
    logger.debug("audit %s", action, extra={"node_id": entity_id})
    return event

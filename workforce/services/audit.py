from decimal import Decimal
from datetime import date, datetime
from typing import Any, Optional

from workforce.services.base import BaseService
from workforce.models.audit_log import AuditLog


def sanitize(obj: Any) -> Any:
    """Make nested values JSON-serializable for the audit columns."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, dict):
        return {k: sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize(i) for i in obj]
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    return obj


class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor_id: Optional[int],
        details: Optional[dict] = None,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None
    ) -> AuditLog:
        """
        Create an audit log entry in the caller's transaction.

        Does not commit: the entry is written or discarded together with the
        change it describes.
        """
        db_log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            details=sanitize(details or {}),
            before_state=sanitize(before_state),
            after_state=sanitize(after_state)
        )
        self.db.add(db_log)
        self.db.flush()
        return db_log

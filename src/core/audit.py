"""Fire-and-forget emission of audit events."""

from typing import Any

from aws_lambda_powertools import Logger

from core.events import EventDispatcher
from core.repositories.audit_repository import AuditEvent, AuditLogRepository

logger = Logger(UTC=True)


class AuditTrail:
    """Builds audit events and appends them off the response path."""

    def __init__(self, repository: AuditLogRepository, dispatcher: EventDispatcher) -> None:
        self._repository = repository
        self._dispatcher = dispatcher

    def record(
        self,
        *,
        action: str,
        resource_id: str,
        actor_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        event = AuditEvent(
            action=action,
            resource_id=resource_id,
            actor_id=actor_id,
            details=details or {},
        )

        try:
            self._dispatcher.submit(self._repository.append, event)
        except Exception:
            logger.exception(
                "Failed to schedule audit event",
                extra={"action": action, "resource_id": resource_id},
            )

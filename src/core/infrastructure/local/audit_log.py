"""Audit log that writes events to the structured service log."""

from aws_lambda_powertools import Logger

from core.repositories.audit_repository import AuditEvent, AuditLogRepository

logger = Logger(service="image-audit", UTC=True)


class LoggerAuditLog(AuditLogRepository):
    """Used when no audit table is configured."""

    def append(self, event: AuditEvent) -> None:
        logger.info("Audit event", extra={"audit": event.model_dump()})

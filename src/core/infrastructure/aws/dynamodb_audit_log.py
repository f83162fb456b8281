"""DynamoDB-backed implementation of AuditLogRepository."""

import uuid

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from core.infrastructure.adapters.dynamodb_adapter import DynamoDBAdapterProtocol
from core.models.errors import DynamoDBError
from core.repositories.audit_repository import AuditEvent, AuditLogRepository

logger = Logger(UTC=True)


class DynamoDBAuditLog(AuditLogRepository):
    """Appends audit events to their own table, keyed by a random event_id."""

    def __init__(self, adapter: DynamoDBAdapterProtocol) -> None:
        self._db = adapter

    def append(self, event: AuditEvent) -> None:
        item = {"event_id": uuid.uuid4().hex, **event.model_dump()}

        try:
            self._db.put_item(item=item)
            logger.debug(
                "Audit event stored",
                extra={"action": event.action, "resource_id": event.resource_id},
            )
        except ClientError as exc:
            logger.error(
                "DynamoDB audit put_item failed",
                extra={"action": event.action, "resource_id": event.resource_id},
            )
            raise DynamoDBError(
                message="Unable to record audit event",
                details={"action": event.action, "resource_id": event.resource_id},
            ) from exc

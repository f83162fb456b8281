import pytest

from core.infrastructure.adapters.dynamodb_adapter import DynamoDBAdapter
from core.infrastructure.aws.dynamodb_audit_log import DynamoDBAuditLog
from core.models.errors import DynamoDBError
from core.repositories.audit_repository import AuditEvent


class TestDynamoDBAuditLog:
    def test_append_stores_event(self, audit_table) -> None:
        log = DynamoDBAuditLog(DynamoDBAdapter(audit_table.name))

        log.append(AuditEvent(action="delete", resource_id="img", actor_id="john", details={"k": "v"}))

        items = audit_table.scan()["Items"]
        assert len(items) == 1
        assert items[0]["action"] == "delete"
        assert items[0]["actor_id"] == "john"
        assert items[0]["details"] == {"k": "v"}
        assert len(items[0]["event_id"]) == 32

    def test_append_failure_is_domain_error(self, dynamodb_resource) -> None:
        log = DynamoDBAuditLog(DynamoDBAdapter("no-such-table"))

        with pytest.raises(DynamoDBError):
            log.append(AuditEvent(action="upload", resource_id="img", actor_id="john"))

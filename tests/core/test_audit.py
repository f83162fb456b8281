from unittest.mock import MagicMock

from core.audit import AuditTrail
from core.events import InlineDispatcher
from core.infrastructure.local.audit_log import LoggerAuditLog
from core.repositories.audit_repository import AuditEvent


class TestAuditTrail:
    def test_record_appends_event(self) -> None:
        repository = MagicMock()
        trail = AuditTrail(repository, InlineDispatcher())

        trail.record(action="delete", resource_id="img", actor_id="john", details={"x": 1})

        event = repository.append.call_args.args[0]
        assert isinstance(event, AuditEvent)
        assert event.action == "delete"
        assert event.resource == "image"
        assert event.resource_id == "img"
        assert event.actor_id == "john"
        assert event.details == {"x": 1}
        assert event.timestamp

    def test_repository_failure_is_swallowed(self) -> None:
        repository = MagicMock()
        repository.append.side_effect = RuntimeError("down")
        trail = AuditTrail(repository, InlineDispatcher())

        trail.record(action="upload", resource_id="img", actor_id="john")

    def test_dispatcher_failure_is_swallowed(self) -> None:
        dispatcher = MagicMock()
        dispatcher.submit.side_effect = RuntimeError("rejected")

        AuditTrail(MagicMock(), dispatcher).record(
            action="upload",
            resource_id="img",
            actor_id="john",
        )


def test_logger_audit_log_accepts_events() -> None:
    LoggerAuditLog().append(AuditEvent(action="update", resource_id="img", actor_id="john"))

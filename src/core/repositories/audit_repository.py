"""Abstract contract for the append-only audit log."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from core.utils.time import utc_now_iso


class AuditEvent(BaseModel):
    """One audit record: who did what to which resource, and when."""

    action: str = Field(..., description="upload, batch_upload, update, delete")
    resource: str = Field(default="image")
    resource_id: str
    actor_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_now_iso)


class AuditLogRepository(ABC):
    """Contract for recording audit events.

    Appends are fire-and-forget from the caller's perspective; the
    services dispatch them through an EventDispatcher.
    """

    @abstractmethod
    def append(self, event: AuditEvent) -> None:
        """Append a single event.

        Raises:
            DynamoDBError: If the event cannot be stored
        """

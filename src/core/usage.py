"""Usage counter updates for delivered images."""

from typing import Literal

from aws_lambda_powertools import Logger

from core.events import EventDispatcher
from core.models.errors import NotFoundError
from core.repositories.metadata_repository import ImageMetadataRepository
from core.utils.constants import COUNTER_DOWNLOAD, COUNTER_VIEW

logger = Logger(UTC=True)

DeliveryMode = Literal["view", "download"]

COUNTER_BY_MODE: dict[str, str] = {
    "view": COUNTER_VIEW,
    "download": COUNTER_DOWNLOAD,
}


class UsageCounter:
    """Records one view or download per successful delivery.

    The increment itself is an atomic update in the metadata store; this
    class only decides which counter and hands the work to the dispatcher so
    the delivery path never waits on it.
    """

    def __init__(self, metadata: ImageMetadataRepository, dispatcher: EventDispatcher) -> None:
        self._metadata = metadata
        self._dispatcher = dispatcher

    def record(self, image_id: str, mode: DeliveryMode) -> None:
        """Schedule the increment. Best-effort: never raises to the caller."""
        field = COUNTER_BY_MODE.get(mode)
        if field is None:
            logger.warning("Unknown delivery mode", extra={"image_id": image_id, "mode": mode})
            return

        try:
            self._dispatcher.submit(self._increment, image_id, field)
        except Exception:
            logger.exception(
                "Failed to schedule counter update",
                extra={"image_id": image_id, "field": field},
            )

    def _increment(self, image_id: str, field: str) -> None:
        try:
            self._metadata.increment_counter(image_id=image_id, field=field)
        except NotFoundError:
            # Deleted between lookup and increment
            logger.info(
                "Counter update skipped, image no longer exists",
                extra={"image_id": image_id, "field": field},
            )
        except Exception as exc:
            logger.warning(
                "Counter update failed",
                extra={"image_id": image_id, "field": field, "error": str(exc)},
            )

"""In-process implementation of ImageMetadataRepository.

Backs local runs (METADATA_BACKEND=memory) and concurrency tests. A single
lock guards the dict; it is held only for in-memory work, never across I/O.
"""

import copy
import threading
from collections.abc import Iterator

from aws_lambda_powertools import Logger

from core.models.errors import DuplicateImageError, FilterError, NotFoundError
from core.repositories.metadata_repository import ImageMetadataRepository, Metadata
from core.utils.constants import COUNTER_DOWNLOAD, COUNTER_VIEW, MAX_LIMIT

logger = Logger(UTC=True)

COUNTER_FIELDS = frozenset({COUNTER_VIEW, COUNTER_DOWNLOAD})
MUTABLE_FIELDS = frozenset({"is_public", "tags", "updated_at"})


class InMemoryMetadata(ImageMetadataRepository):
    """Dict-backed metadata store with atomic counters."""

    def __init__(self) -> None:
        self._items: dict[str, Metadata] = {}
        self._lock = threading.Lock()

    def create_metadata(self, *, metadata: Metadata) -> None:
        image_id = metadata.get("image_id")
        if not image_id or not isinstance(image_id, str):
            raise ValueError("metadata must contain non-empty 'image_id' (string)")

        with self._lock:
            if image_id in self._items:
                raise DuplicateImageError(
                    message="Image identifier already in use",
                    details={"image_id": image_id},
                )
            self._items[image_id] = copy.deepcopy(metadata)

        logger.info(
            "Metadata created",
            extra={"image_id": image_id, "user_id": metadata.get("user_id")},
        )

    def image_exists(self, *, image_id: str) -> bool:
        with self._lock:
            return image_id in self._items

    def fetch_metadata(self, *, image_id: str) -> Metadata | None:
        with self._lock:
            item = self._items.get(image_id)
            return copy.deepcopy(item) if item is not None else None

    def update_metadata(self, *, image_id: str, changes: Metadata) -> Metadata:
        illegal = set(changes) - MUTABLE_FIELDS
        if illegal:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(illegal))}")

        if not changes:
            raise ValueError("No changes supplied")

        with self._lock:
            item = self._items.get(image_id)
            if item is None:
                raise NotFoundError(message="Image not found", details={"image_id": image_id})
            item.update(copy.deepcopy(changes))
            return copy.deepcopy(item)

    def remove_metadata(self, *, image_id: str) -> Metadata | None:
        with self._lock:
            removed = self._items.pop(image_id, None)

        logger.info(
            "Metadata removed",
            extra={"image_id": image_id, "existed": removed is not None},
        )
        return removed

    def increment_counter(self, *, image_id: str, field: str, amount: int = 1) -> int:
        if field not in COUNTER_FIELDS:
            raise ValueError(f"'{field}' is not a usage counter")

        with self._lock:
            item = self._items.get(image_id)
            if item is None:
                raise NotFoundError(message="Image not found", details={"image_id": image_id})
            item[field] = int(item.get(field, 0)) + amount
            return item[field]

    def list_user_images(
        self,
        *,
        user_id: str,
        limit: int | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[Metadata]:
        if limit is not None and (limit < 1 or limit > MAX_LIMIT):
            raise FilterError(
                message=f"Limit must be between 1 and {MAX_LIMIT}",
                details={"limit": limit},
            )

        if start_date and end_date and start_date > end_date:
            raise FilterError(
                message="Start date must be before end date",
                details={"start_date": start_date, "end_date": end_date},
            )

        with self._lock:
            items = [
                copy.deepcopy(item)
                for item in self._items.values()
                if item.get("user_id") == user_id
                and (not start_date or item.get("created_at", "") >= start_date)
                and (not end_date or item.get("created_at", "") <= end_date)
            ]

        items.sort(key=lambda item: item.get("created_at", ""), reverse=True)
        return items[:limit] if limit is not None else items

    def scan_metadata(self) -> Iterator[Metadata]:
        with self._lock:
            snapshot = [copy.deepcopy(item) for item in self._items.values()]
        yield from snapshot

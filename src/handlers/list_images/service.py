"""
Business logic for image listing and per-user statistics.
"""

from typing import Any

from aws_lambda_powertools import Logger
from pydantic import ValidationError as PydanticValidationError

from core.dependencies import ServiceDependencies, get_dependencies
from core.filters.offset_pagination import OffsetPagination
from core.models.errors import MetadataOperationFailedError
from core.models.image import ImageMetadata, ImagePublicView, ListImagesResponse, UserImageStats
from core.models.principal import Principal
from core.utils.constants import DEFAULT_LIMIT, DEFAULT_OFFSET, ERROR_CODE_METADATA_LIST_FAILED

Metadata = dict[str, Any]

logger = Logger(UTC=True)


class ListService:
    """Application service responsible for listing user images.

    This service coordinates:
    - Fetching an owner's records, or the public gallery of all owners,
      newest first, optionally by date range
    - Hiding private images from anyone but the owner or an admin
    - Offset pagination
    - Cached aggregate statistics
    """

    def __init__(self, deps: ServiceDependencies | None = None) -> None:
        deps = deps or get_dependencies()
        self.metadata = deps.metadata
        self.cache = deps.cache
        self.pagination = OffsetPagination()

    def list_images(
        self,
        *,
        owner_id: str | None,
        requester: Principal | None,
        start_date: str | None = None,
        end_date: str | None = None,
        offset: int = DEFAULT_OFFSET,
        limit: int = DEFAULT_LIMIT,
    ) -> ListImagesResponse:
        """List one owner's images, or public images from every owner.

        Without ``owner_id`` the result is the public gallery: public images
        of all owners, newest first, whoever is asking.

        Raises:
            FilterError: If pagination or dates are invalid
            MetadataOperationFailedError: If the store cannot be queried
        """
        self.pagination.validate(limit, offset)

        if owner_id is None:
            records = self._public_records(start_date=start_date, end_date=end_date)
            sees_private = False
        else:
            records = self._owner_records(owner_id, start_date=start_date, end_date=end_date)
            sees_private = requester is not None and requester.can_manage(owner_id)
            if not sees_private:
                records = [record for record in records if record.is_public]

        page = self.pagination.paginate(records, offset=offset, limit=limit)
        images = [ImagePublicView.from_metadata(record) for record in page.items]

        logger.info(
            "Images listed successfully",
            extra={
                "owner_id": owner_id,
                "count": len(images),
                "total": page.total_count,
                "include_private": sees_private,
            },
        )

        return ListImagesResponse(
            images=images,
            total_count=page.total_count,
            returned_count=len(images),
            pagination=page.info,
        )

    def user_stats(self, user_id: str) -> UserImageStats:
        """Image count, stored bytes and usage totals for one owner.

        Served from the TTL cache when possible; uploads, updates and
        deletes invalidate the owner's entry.
        """
        return self.cache.get_or_set(
            UserImageStats.cache_key(user_id),
            lambda: self._compute_stats(user_id),
        )

    def _compute_stats(self, user_id: str) -> UserImageStats:
        records = self._owner_records(user_id)
        stats = UserImageStats(
            user_id=user_id,
            image_count=len(records),
            total_bytes=sum(record.file_size for record in records),
            total_views=sum(record.view_count for record in records),
            total_downloads=sum(record.download_count for record in records),
        )
        logger.debug("User statistics computed", extra=stats.model_dump())
        return stats

    def _owner_records(
        self,
        owner_id: str,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[ImageMetadata]:
        try:
            items = self.metadata.list_user_images(
                user_id=owner_id,
                start_date=start_date,
                end_date=end_date,
            )
        except MetadataOperationFailedError as exc:
            logger.exception("Failed to fetch metadata", extra={"owner_id": owner_id})
            raise MetadataOperationFailedError(
                message="Unable to retrieve images",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
                details={"user_id": owner_id},
            ) from exc

        return self._parse_records(items)

    def _public_records(
        self,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[ImageMetadata]:
        """Public images of every owner within the date range, newest first."""
        try:
            items = [item for item in self.metadata.scan_metadata() if item.get("is_public", True)]
        except MetadataOperationFailedError as exc:
            logger.exception("Failed to scan metadata for public listing")
            raise MetadataOperationFailedError(
                message="Unable to retrieve images",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
            ) from exc

        records = [
            record
            for record in self._parse_records(items)
            if (start_date is None or record.created_at >= start_date)
            and (end_date is None or record.created_at <= end_date)
        ]
        records.sort(key=lambda record: record.created_at, reverse=True)
        return records

    @staticmethod
    def _parse_records(items: list[Metadata]) -> list[ImageMetadata]:
        records: list[ImageMetadata] = []
        for item in items:
            try:
                records.append(ImageMetadata.model_validate(item))
            except PydanticValidationError:
                logger.warning(
                    "Skipping malformed item",
                    extra={"image_id": item.get("image_id"), "integrity_warning": True},
                )
        return records

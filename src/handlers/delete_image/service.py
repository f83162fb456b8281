"""Business logic for image deletion.

The metadata record is removed first: once it is gone the image no longer
exists for every reader. The backing file is removed afterwards on a
best-effort basis; a file left behind is logged for the orphan sweep and
does not fail the request.
"""

from aws_lambda_powertools import Logger

from core.dependencies import ServiceDependencies, get_dependencies
from core.models.errors import ForbiddenError, NotFoundError
from core.models.image import UserImageStats
from core.models.principal import Principal
from core.repositories.metadata_repository import require_image
from core.utils.time import utc_now_iso

from .models import DeletionReceipt

logger = Logger(UTC=True)


class DeleteService:
    """Application service responsible for deleting images.

    This service orchestrates:
    - Validation that the image exists and the caller may delete it
    - Removal of metadata from the database
    - Deletion of the image file from storage

    It does not perform low-level infrastructure operations directly.
    """

    def __init__(self, deps: ServiceDependencies | None = None) -> None:
        """Initialize the delete service with required infrastructure dependencies."""
        deps = deps or get_dependencies()
        self.storage = deps.storage
        self.metadata = deps.metadata
        self.audit = deps.audit
        self.cache = deps.cache

    def delete_image(self, image_id: str, principal: Principal) -> DeletionReceipt:
        """Delete an image and its metadata.

        The deletion flow is:
        1. Fetch metadata to confirm the image exists and obtain the storage path
        2. Check the caller owns the image or is an admin
        3. Delete the metadata record
        4. Delete the file (failure logged, not escalated)

        Args:
            image_id: Unique identifier of the image to delete
            principal: Caller requesting the deletion

        Returns:
            Receipt naming the image, its owner and whether the file went too

        Raises:
            NotFoundError: If the image does not exist
            ForbiddenError: If the caller is neither owner nor admin
            MetadataOperationFailedError: If metadata deletion fails
        """
        logger.debug(
            "Starting image deletion",
            extra={"image_id": image_id, "user_id": principal.user_id},
        )

        metadata = require_image(self.metadata, image_id)

        if not principal.can_manage(metadata.user_id):
            logger.warning(
                "Delete denied",
                extra={"image_id": image_id, "user_id": principal.user_id},
            )
            raise ForbiddenError(
                message="You don't have permission to delete this image",
                details={"image_id": image_id},
            )

        removed = self.metadata.remove_metadata(image_id=image_id)
        if removed is None:
            # Deleted concurrently between lookup and removal
            raise NotFoundError(message="Image not found", details={"image_id": image_id})

        file_removed = self._remove_file(image_id, metadata.storage_path)
        self.cache.delete(UserImageStats.cache_key(metadata.user_id))

        self.audit.record(
            action="delete",
            resource_id=image_id,
            actor_id=principal.user_id,
            details={"owner_id": metadata.user_id, "file_removed": file_removed},
        )

        logger.info(
            "Image deleted successfully",
            extra={"image_id": image_id, "file_removed": file_removed},
        )

        return DeletionReceipt(
            image_id=image_id,
            owner_id=metadata.user_id,
            deleted_at=utc_now_iso(),
            file_removed=file_removed,
        )

    def _remove_file(self, image_id: str, storage_path: str) -> bool:
        try:
            removed = self.storage.remove_image(storage_path=storage_path)
        except Exception as exc:
            logger.warning(
                "Failed to delete image file after metadata removal",
                extra={"image_id": image_id, "error": str(exc), "integrity_warning": True},
            )
            return False

        if not removed:
            logger.warning(
                "Image file was already missing",
                extra={"image_id": image_id, "integrity_warning": True},
            )
        return removed

"""Business logic for changing image visibility and tags."""

from aws_lambda_powertools import Logger

from core.dependencies import ServiceDependencies, get_dependencies
from core.models.errors import ForbiddenError, ValidationError
from core.models.image import ImageMetadata, ImagePublicView, UserImageStats
from core.models.principal import Principal
from core.repositories.metadata_repository import require_image
from core.utils.constants import ERROR_CODE_NO_UPDATE_DATA
from core.utils.time import utc_now_iso

logger = Logger(UTC=True)


class UpdateService:
    """Application service responsible for image metadata updates.

    Only ``is_public`` and ``tags`` are caller-editable. Every update bumps
    ``updated_at``, which in turn changes the delivery ETag.
    """

    def __init__(self, deps: ServiceDependencies | None = None) -> None:
        deps = deps or get_dependencies()
        self.metadata = deps.metadata
        self.audit = deps.audit
        self.cache = deps.cache

    def update_image(
        self,
        image_id: str,
        principal: Principal,
        *,
        is_public: bool | None = None,
        tags: list[str] | None = None,
    ) -> ImagePublicView:
        """
        Apply visibility and tag changes to an image owned by the caller.

        Args:
            image_id: Unique image identifier
            principal: Caller requesting the change
            is_public: New visibility, or None to keep the current one
            tags: Replacement tags, or None to keep the current ones

        Returns:
            The public view of the updated record

        Raises:
            ValidationError: If no field is supplied
            NotFoundError: If the image does not exist
            ForbiddenError: If the caller is neither owner nor admin
            DynamoDBError: If the update fails
        """
        changes: dict[str, object] = {}
        if is_public is not None:
            changes["is_public"] = is_public
        if tags is not None:
            changes["tags"] = tags

        if not changes:
            raise ValidationError(
                message="No fields supplied for update",
                error_code=ERROR_CODE_NO_UPDATE_DATA,
                details={"image_id": image_id},
            )

        current = require_image(self.metadata, image_id)

        if not principal.can_manage(current.user_id):
            logger.warning(
                "Update denied",
                extra={"image_id": image_id, "user_id": principal.user_id},
            )
            raise ForbiddenError(
                message="You don't have permission to update this image",
                details={"image_id": image_id},
            )

        changes["updated_at"] = utc_now_iso()
        updated = ImageMetadata.model_validate(
            self.metadata.update_metadata(image_id=image_id, changes=changes)
        )

        self.cache.delete(UserImageStats.cache_key(current.user_id))
        self.audit.record(
            action="update",
            resource_id=image_id,
            actor_id=principal.user_id,
            details={"fields": sorted(k for k in changes if k != "updated_at")},
        )

        logger.info(
            "Image updated",
            extra={"image_id": image_id, "fields": sorted(changes)},
        )
        return ImagePublicView.from_metadata(updated)

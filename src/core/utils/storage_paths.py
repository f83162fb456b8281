"""Deterministic on-disk locations for image files.

Layout: ``<upload_root>/<YYYY>/<MM>/<image_id><ext>``. The path depends only
on the identifier, the creation month and the validated MIME type; client
file names never take part.
"""

from datetime import datetime
from pathlib import Path, PurePosixPath

from aws_lambda_powertools import Logger

from core.models.errors import ImageUploadFailedError, ValidationError
from core.utils.identifiers import is_valid_image_id
from core.utils.mime import extension_for

logger = Logger(UTC=True)


class StoragePathResolver:
    """Maps (identifier, creation time) to a location under the upload root."""

    def __init__(self, upload_root: str | Path) -> None:
        self._root = Path(upload_root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def relative_path(
        self,
        *,
        image_id: str,
        mime_type: str,
        created_at: datetime,
    ) -> str:
        """Return the POSIX path of an image relative to the upload root.

        Raises:
            ValidationError: If the identifier is not a generated token
        """
        if not is_valid_image_id(image_id):
            raise ValidationError(
                message="Invalid image identifier",
                details={"image_id": image_id},
            )

        directory = f"{created_at.year:04d}/{created_at.month:02d}"
        return f"{directory}/{image_id}{extension_for(mime_type)}"

    def resolve(
        self,
        *,
        image_id: str,
        mime_type: str,
        created_at: datetime,
    ) -> tuple[str, Path]:
        """Return (relative, absolute) paths, creating the month directory.

        Directory creation is idempotent; concurrent creators do not fail.

        Raises:
            ValidationError: If the identifier is not a generated token
            ImageUploadFailedError: If the directory cannot be created
        """
        relative = self.relative_path(
            image_id=image_id,
            mime_type=mime_type,
            created_at=created_at,
        )
        absolute = self.absolute(relative)
        try:
            absolute.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error(
                "Unable to create storage directory",
                extra={"image_id": image_id, "storage_path": relative, "error": str(exc)},
            )
            raise ImageUploadFailedError(
                message="Unable to upload image",
                details={"image_id": image_id},
            ) from exc

        logger.debug(
            "Resolved storage path",
            extra={"image_id": image_id, "storage_path": relative},
        )
        return relative, absolute

    def absolute(self, relative: str) -> Path:
        """Turn a stored relative path into an absolute one inside the root.

        Raises:
            ValidationError: If the path is absolute or escapes the root
        """
        pure = PurePosixPath(relative)

        if not relative or pure.is_absolute() or ".." in pure.parts or "\\" in relative:
            raise ValidationError(
                message="Invalid storage path",
                details={"storage_path": relative},
            )

        candidate = (self._root / pure).resolve()
        if not candidate.is_relative_to(self._root):
            raise ValidationError(
                message="Invalid storage path",
                details={"storage_path": relative},
            )

        return candidate

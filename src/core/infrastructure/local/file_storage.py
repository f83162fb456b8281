"""Local-disk implementation of ImageStorageRepository."""

import os
import tempfile
from pathlib import Path

from aws_lambda_powertools import Logger

from core.models.errors import (
    ImageDeletionFailedError,
    ImageDownloadFailedError,
    ImageUploadFailedError,
    NotFoundError,
)
from core.repositories.storage_repository import ImageStorageRepository
from core.utils.storage_paths import StoragePathResolver

logger = Logger(UTC=True)


class LocalImageStorage(ImageStorageRepository):
    """Image storage on a local filesystem under a single upload root.

    Writes land in a temporary file beside the target and are hard-linked into
    place, so readers only ever see complete files and an existing file is
    never overwritten.
    """

    def __init__(self, resolver: StoragePathResolver) -> None:
        self._paths = resolver

    def write_image(self, *, storage_path: str, file_data: bytes) -> None:
        """Write image bytes; on any failure no file is left behind."""
        target = self._paths.absolute(storage_path)

        logger.debug(
            "Writing image",
            extra={"storage_path": storage_path, "size": len(file_data)},
        )

        temp_path: Path | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)

            fd, temp_name = tempfile.mkstemp(
                dir=target.parent,
                prefix=f".{target.stem}.",
                suffix=".part",
            )
            temp_path = Path(temp_name)

            with os.fdopen(fd, "wb") as handle:
                handle.write(file_data)
                handle.flush()
                os.fsync(handle.fileno())

            os.link(temp_path, target)
            logger.info("Image written", extra={"storage_path": storage_path})

        except FileExistsError as exc:
            logger.error("Storage path already taken", extra={"storage_path": storage_path})
            raise ImageUploadFailedError(
                message="Unable to store image at this time",
                details={"storage_path": storage_path, "reason": "exists"},
            ) from exc

        except Exception as exc:
            logger.exception("Image write failed", extra={"storage_path": storage_path})
            raise ImageUploadFailedError(
                message="Unable to store image at this time",
                details={"storage_path": storage_path},
            ) from exc

        finally:
            if temp_path is not None:
                self._discard(temp_path)

    def read_image(self, *, storage_path: str) -> bytes:
        path = self._paths.absolute(storage_path)

        try:
            data = path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(
                message="Image not found",
                details={"storage_path": storage_path},
            ) from exc
        except OSError as exc:
            logger.exception("Image read failed", extra={"storage_path": storage_path})
            raise ImageDownloadFailedError(
                message="Unable to read image at this time",
                details={"storage_path": storage_path},
            ) from exc

        logger.debug(
            "Image read",
            extra={"storage_path": storage_path, "size": len(data)},
        )
        return data

    def exists(self, *, storage_path: str) -> bool:
        return self._paths.absolute(storage_path).is_file()

    def remove_image(self, *, storage_path: str) -> bool:
        path = self._paths.absolute(storage_path)

        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Image already absent", extra={"storage_path": storage_path})
            return False
        except OSError as exc:
            logger.error("Image deletion failed", extra={"storage_path": storage_path})
            raise ImageDeletionFailedError(
                message="Unable to delete image at this time",
                details={"storage_path": storage_path},
            ) from exc

        logger.info("Image deleted", extra={"storage_path": storage_path})
        return True

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to remove temporary file", extra={"path": str(path)})

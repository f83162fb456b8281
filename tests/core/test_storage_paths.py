from datetime import datetime, timezone
from pathlib import Path

import pytest

from core.models.errors import ImageUploadFailedError, ValidationError
from core.utils.storage_paths import StoragePathResolver

IMAGE_ID = "AbCdEfGhIjKlMnOpQrStUv"
CREATED_AT = datetime(2024, 3, 9, 12, 0, tzinfo=timezone.utc)


class TestStoragePathResolver:
    def test_relative_path_layout(self, upload_root: Path) -> None:
        resolver = StoragePathResolver(upload_root)

        relative = resolver.relative_path(
            image_id=IMAGE_ID,
            mime_type="image/png",
            created_at=CREATED_AT,
        )

        assert relative == f"2024/03/{IMAGE_ID}.png"

    def test_same_inputs_same_path(self, upload_root: Path) -> None:
        resolver = StoragePathResolver(upload_root)
        kwargs = {"image_id": IMAGE_ID, "mime_type": "image/jpeg", "created_at": CREATED_AT}

        assert resolver.relative_path(**kwargs) == resolver.relative_path(**kwargs)

    def test_resolve_creates_month_directory(self, upload_root: Path) -> None:
        resolver = StoragePathResolver(upload_root)

        relative, absolute = resolver.resolve(
            image_id=IMAGE_ID,
            mime_type="image/jpeg",
            created_at=CREATED_AT,
        )

        assert absolute == upload_root.resolve() / relative
        assert absolute.parent.is_dir()
        assert not absolute.exists()

    def test_resolve_is_idempotent(self, upload_root: Path) -> None:
        resolver = StoragePathResolver(upload_root)
        kwargs = {"image_id": IMAGE_ID, "mime_type": "image/jpeg", "created_at": CREATED_AT}

        assert resolver.resolve(**kwargs) == resolver.resolve(**kwargs)

    def test_unwritable_month_directory(self, upload_root: Path) -> None:
        (upload_root / "2024").write_bytes(b"not a directory")
        resolver = StoragePathResolver(upload_root)

        with pytest.raises(ImageUploadFailedError):
            resolver.resolve(image_id=IMAGE_ID, mime_type="image/jpeg", created_at=CREATED_AT)

    def test_rejects_non_generated_identifier(self, upload_root: Path) -> None:
        resolver = StoragePathResolver(upload_root)

        with pytest.raises(ValidationError):
            resolver.relative_path(
                image_id="../escape",
                mime_type="image/jpeg",
                created_at=CREATED_AT,
            )

    @pytest.mark.parametrize(
        "relative",
        ["", "/etc/passwd", "../outside.jpg", "2024/../../outside.jpg", "2024\\01\\x.jpg"],
    )
    def test_absolute_rejects_escaping_paths(self, upload_root: Path, relative: str) -> None:
        resolver = StoragePathResolver(upload_root)

        with pytest.raises(ValidationError):
            resolver.absolute(relative)

    def test_absolute_stays_under_root(self, upload_root: Path) -> None:
        resolver = StoragePathResolver(upload_root)

        assert resolver.absolute("2024/01/x.jpg").is_relative_to(upload_root.resolve())

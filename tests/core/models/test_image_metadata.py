from typing import Any

import pytest
from pydantic import ValidationError

from core.models.image import ImageMetadata, ImagePublicView, UserImageStats


class TestImageMetadata:
    def test_defaults(self, sample_metadata: dict[str, Any]) -> None:
        record = dict(sample_metadata)
        for key in ("is_public", "tags", "view_count", "download_count", "width", "height"):
            record.pop(key)

        metadata = ImageMetadata.model_validate(record)

        assert metadata.is_public is True
        assert metadata.tags is None
        assert metadata.view_count == 0
        assert metadata.download_count == 0
        assert metadata.width is None

    def test_strict_types(self, sample_metadata: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            ImageMetadata.model_validate({**sample_metadata, "file_size": "1024"})

    def test_counters_never_negative(self, sample_metadata: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            ImageMetadata.model_validate({**sample_metadata, "view_count": -1})

    @pytest.mark.parametrize("field", ["file_size", "width", "height"])
    def test_sizes_must_be_positive(self, sample_metadata: dict[str, Any], field: str) -> None:
        with pytest.raises(ValidationError):
            ImageMetadata.model_validate({**sample_metadata, field: 0})

    def test_required_fields(self, sample_metadata: dict[str, Any]) -> None:
        record = dict(sample_metadata)
        record.pop("storage_path")

        with pytest.raises(ValidationError):
            ImageMetadata.model_validate(record)


class TestImagePublicView:
    def test_hides_storage_path(self, sample_metadata: dict[str, Any]) -> None:
        view = ImagePublicView.from_metadata(ImageMetadata.model_validate(sample_metadata))
        dumped = view.model_dump()

        assert "storage_path" not in dumped
        assert dumped["url"] == f"/image/{sample_metadata['image_id']}"
        assert dumped["width"] == 640
        assert dumped["tags"] == ["nature"]


def test_user_stats_cache_key() -> None:
    assert UserImageStats.cache_key("john") == "user-stats:john"

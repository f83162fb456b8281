import io
from concurrent.futures import ThreadPoolExecutor

import pytest
from PIL import Image

from core.dependencies import ServiceDependencies
from core.models.errors import NotFoundError, ValidationError
from core.models.principal import Principal
from core.utils.constants import CACHE_CONTROL_IMMUTABLE
from core.utils.time import iso_to_epoch_ms
from handlers.delete_image.service import DeleteService
from handlers.get_image.service import GetService, build_etag, content_disposition


def _size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


@pytest.fixture
def service(deps: ServiceDependencies) -> GetService:
    return GetService(deps)


class TestDeliver:
    def test_original_bytes_and_view_headers(
        self, service: GetService, deps, store_image, owner: Principal, jpeg_bytes: bytes
    ) -> None:
        image = store_image(owner)

        result = service.deliver(image.image_id)

        assert result.content == jpeg_bytes
        assert result.content_type == "image/jpeg"
        assert result.transformed is False
        assert result.headers == {
            "Cache-Control": CACHE_CONTROL_IMMUTABLE,
            "ETag": f'"{image.image_id}-{iso_to_epoch_ms(image.updated_at)}"',
        }
        assert deps.metadata.fetch_metadata(image_id=image.image_id)["view_count"] == 1

    def test_download_headers_and_counter(
        self, service: GetService, deps, store_image, owner: Principal
    ) -> None:
        image = store_image(owner, image_name="report final.jpg")

        result = service.deliver(image.image_id, mode="download")

        assert result.headers == {"Content-Disposition": 'attachment; filename="report final.jpg"'}
        record = deps.metadata.fetch_metadata(image_id=image.image_id)
        assert (record["view_count"], record["download_count"]) == (0, 1)

    def test_resize_keeps_aspect_ratio(
        self, service: GetService, store_image, owner: Principal
    ) -> None:
        image = store_image(owner)

        result = service.deliver(image.image_id, width=200)

        assert result.transformed is True
        width, height = _size(result.content)
        assert width == 200
        assert abs(height - 150) <= 1

    def test_box_fit(self, service: GetService, store_image, owner: Principal) -> None:
        image = store_image(owner)

        width, height = _size(service.deliver(image.image_id, width=100, height=100).content)

        assert width <= 100 and height <= 100
        assert max(width, height) == 100

    def test_never_enlarges(self, service: GetService, store_image, owner: Principal) -> None:
        image = store_image(owner)

        result = service.deliver(image.image_id, width=4000, height=4000)

        assert _size(result.content) == (640, 480)

    def test_transform_is_deterministic(
        self, service: GetService, store_image, owner: Principal
    ) -> None:
        image = store_image(owner)

        first = service.deliver(image.image_id, width=120, quality=60).content
        second = service.deliver(image.image_id, width=120, quality=60).content

        assert first == second

    def test_png_keeps_format(
        self, service: GetService, store_image, owner: Principal, png_bytes: bytes
    ) -> None:
        image = store_image(owner, file_data=png_bytes, mime_type="image/png", image_name="a.png")

        result = service.deliver(image.image_id, height=100)

        assert result.content_type == "image/png"
        with Image.open(io.BytesIO(result.content)) as img:
            assert img.format == "PNG"
            assert img.size == (150, 100)

    def test_svg_falls_back_to_original(
        self, service: GetService, store_image, owner: Principal
    ) -> None:
        svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"/>'
        image = store_image(owner, file_data=svg, mime_type="image/svg+xml", image_name="a.svg")

        result = service.deliver(image.image_id, width=5)

        assert result.content == svg
        assert result.transformed is False

    @pytest.mark.parametrize(
        "kwargs",
        [{"width": 0}, {"height": 8193}, {"quality": 0}, {"quality": 101}],
    )
    def test_rejects_out_of_range_parameters(
        self, service: GetService, deps, store_image, owner: Principal, kwargs: dict
    ) -> None:
        image = store_image(owner)

        with pytest.raises(ValidationError):
            service.deliver(image.image_id, **kwargs)

        assert deps.metadata.fetch_metadata(image_id=image.image_id)["view_count"] == 0

    @pytest.mark.parametrize("image_id", ["unknown", "../../etc/passwd", "B" * 22])
    def test_unknown_or_malformed_id(self, service: GetService, image_id: str) -> None:
        with pytest.raises(NotFoundError):
            service.deliver(image_id)

    def test_missing_file_is_not_found(
        self, service: GetService, deps, store_image, owner: Principal
    ) -> None:
        image = store_image(owner)
        record = deps.metadata.fetch_metadata(image_id=image.image_id)
        deps.storage.remove_image(storage_path=record["storage_path"])

        with pytest.raises(NotFoundError):
            service.deliver(image.image_id)

        assert deps.metadata.fetch_metadata(image_id=image.image_id)["view_count"] == 0

    def test_deleted_image_is_not_found(
        self, service: GetService, deps, store_image, owner: Principal
    ) -> None:
        image = store_image(owner)
        DeleteService(deps).delete_image(image.image_id, owner)

        with pytest.raises(NotFoundError):
            service.deliver(image.image_id)

    def test_concurrent_deliveries_count_exactly(
        self, service: GetService, deps, store_image, owner: Principal, image_factory
    ) -> None:
        image = store_image(owner, file_data=image_factory("JPEG", (16, 16)))
        modes = ["view"] * 700 + ["download"] * 300

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda mode: service.deliver(image.image_id, mode=mode), modes))

        assert len(results) == 1000
        record = deps.metadata.fetch_metadata(image_id=image.image_id)
        assert record["view_count"] == 700
        assert record["download_count"] == 300


class TestGetImageInfo:
    def test_returns_public_view(self, service: GetService, store_image, owner: Principal) -> None:
        image = store_image(owner, tags=["a"])
        service.deliver(image.image_id)

        info = service.get_image_info(image.image_id)

        assert info.image_id == image.image_id
        assert info.tags == ["a"]
        assert info.view_count == 1

    def test_does_not_count_as_view(
        self, service: GetService, deps, store_image, owner: Principal
    ) -> None:
        image = store_image(owner)

        service.get_image_info(image.image_id)

        assert deps.metadata.fetch_metadata(image_id=image.image_id)["view_count"] == 0


class TestHeaders:
    def test_etag_tracks_updated_at(self) -> None:
        assert build_etag("abc", "1970-01-01T00:00:01+00:00") == '"abc-1000"'

    def test_disposition_strips_quotes_and_controls(self) -> None:
        assert content_disposition('ev"il\r\n.jpg') == 'attachment; filename="evil.jpg"'

    def test_disposition_non_ascii(self) -> None:
        header = content_disposition("café.jpg")

        assert header == "attachment; filename=\"caf.jpg\"; filename*=UTF-8''caf%C3%A9.jpg"

    def test_disposition_empty_name(self) -> None:
        assert content_disposition('""') == 'attachment; filename="image"'


class TestDeliverRaw:
    def test_original_bytes_without_usage(
        self, service: GetService, deps, store_image, owner: Principal, jpeg_bytes: bytes
    ) -> None:
        image = store_image(owner)

        result = service.deliver_raw(image.image_id)

        assert result.content == jpeg_bytes
        assert result.transformed is False
        assert result.headers["ETag"] == build_etag(image.image_id, image.updated_at)
        record = deps.metadata.fetch_metadata(image_id=image.image_id)
        assert (record["view_count"], record["download_count"]) == (0, 0)

    def test_unknown_image(self, service: GetService) -> None:
        with pytest.raises(NotFoundError):
            service.deliver_raw("D" * 22)

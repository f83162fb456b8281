import pytest

from core.models.errors import ForbiddenError, NotFoundError, ValidationError
from core.models.image import UserImageStats
from handlers.get_image.service import build_etag
from handlers.update_image.service import UpdateService


@pytest.fixture
def service(deps) -> UpdateService:
    return UpdateService(deps)


@pytest.fixture
def stored(deps, sample_metadata) -> dict:
    deps.metadata.create_metadata(metadata=sample_metadata)
    return sample_metadata


def test_changes_visibility_and_bumps_updated_at(service, deps, stored, owner) -> None:
    image = service.update_image(stored["image_id"], owner, is_public=False)

    assert image.is_public is False
    assert image.tags == ["nature"]
    assert image.updated_at > stored["updated_at"]
    assert image.created_at == stored["created_at"]
    assert build_etag(image.image_id, image.updated_at) != build_etag(
        stored["image_id"], stored["updated_at"]
    )
    assert deps.metadata.fetch_metadata(image_id=stored["image_id"])["is_public"] is False


def test_replaces_and_clears_tags(service, stored, owner) -> None:
    assert service.update_image(stored["image_id"], owner, tags=["a", "b"]).tags == ["a", "b"]
    assert service.update_image(stored["image_id"], owner, tags=[]).tags == []


def test_counters_untouched(service, deps, stored, owner) -> None:
    deps.metadata.increment_counter(image_id=stored["image_id"], field="view_count")

    image = service.update_image(stored["image_id"], owner, tags=["x"])

    assert image.view_count == 1


def test_requires_a_change(service, owner) -> None:
    with pytest.raises(ValidationError) as info:
        service.update_image("A" * 22, owner)

    assert info.value.error_code == "NO_UPDATE_DATA"


def test_admin_may_update(service, stored, admin) -> None:
    assert service.update_image(stored["image_id"], admin, is_public=False).is_public is False


def test_other_user_is_forbidden(service, deps, stored, other_user) -> None:
    with pytest.raises(ForbiddenError):
        service.update_image(stored["image_id"], other_user, is_public=False)

    assert deps.metadata.fetch_metadata(image_id=stored["image_id"])["is_public"] is True


def test_unknown_image(service, owner) -> None:
    with pytest.raises(NotFoundError):
        service.update_image("Z" * 22, owner, is_public=True)


def test_invalidates_owner_stats(service, deps, stored, admin) -> None:
    deps.cache.set(UserImageStats.cache_key("john"), "stale")

    service.update_image(stored["image_id"], admin, tags=["x"])

    assert deps.cache.get(UserImageStats.cache_key("john")) is None

"""
Pytest configuration and fixtures for image service tests.
Provides AWS mocking, a DynamoDB table with the listing index, an isolated
upload root and in-memory service dependencies.
"""

import io
import os

os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("IMAGE_METADATA_TABLE_NAME", "image-metadata-test")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "image-service-test")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "ImageServiceTest")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("METADATA_BACKEND", "memory")

from collections.abc import Callable  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

import boto3  # noqa: E402
import pytest  # noqa: E402
from moto import mock_aws  # noqa: E402
from PIL import Image  # noqa: E402

from core.config import ServiceConfig  # noqa: E402
from core.dependencies import ServiceDependencies, build_dependencies  # noqa: E402
from core.events import InlineDispatcher  # noqa: E402
from core.infrastructure.local.memory_metadata import InMemoryMetadata  # noqa: E402
from core.models.principal import Principal  # noqa: E402
from core.utils.constants import METADATA_BACKEND_MEMORY, ROLE_ADMIN  # noqa: E402

AUDIT_TABLE_NAME = "image-audit-test"


@pytest.fixture(scope="function")
def aws_mock():
    with mock_aws():
        yield


@pytest.fixture(scope="function")
def dynamodb_resource(aws_mock):
    return boto3.resource("dynamodb", region_name=os.getenv("AWS_REGION"))


@pytest.fixture(scope="function")
def dynamodb_table(dynamodb_resource):
    """Metadata table with the ``user-created-index`` GSI used for listing."""
    table = dynamodb_resource.create_table(
        TableName=os.getenv("IMAGE_METADATA_TABLE_NAME"),
        BillingMode="PAY_PER_REQUEST",
        KeySchema=[{"AttributeName": "image_id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "image_id", "AttributeType": "S"},
            {"AttributeName": "user_id", "AttributeType": "S"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "user-created-index",
                "KeySchema": [
                    {"AttributeName": "user_id", "KeyType": "HASH"},
                    {"AttributeName": "created_at", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
    )
    table.wait_until_exists()
    return table


@pytest.fixture(scope="function")
def audit_table(dynamodb_resource):
    table = dynamodb_resource.create_table(
        TableName=AUDIT_TABLE_NAME,
        BillingMode="PAY_PER_REQUEST",
        KeySchema=[{"AttributeName": "event_id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "event_id", "AttributeType": "S"}],
    )
    table.wait_until_exists()
    return table


def make_image_bytes(
    image_format: str = "JPEG",
    size: tuple[int, int] = (64, 48),
    color: tuple[int, ...] = (200, 30, 30),
    mode: str = "RGB",
) -> bytes:
    """Encode a solid-colour image with Pillow."""
    output = io.BytesIO()
    Image.new(mode, size, color).save(output, format=image_format)
    return output.getvalue()


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return make_image_bytes


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG", (640, 480))


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG", (300, 200), (10, 120, 240, 255), mode="RGBA")


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def service_config(upload_root: Path) -> ServiceConfig:
    return ServiceConfig(
        upload_root=upload_root,
        metadata_backend=METADATA_BACKEND_MEMORY,
        enable_guest_upload=True,
    )


@pytest.fixture
def deps(service_config: ServiceConfig) -> ServiceDependencies:
    """In-memory metadata, local storage under tmp, side effects run inline."""
    return build_dependencies(
        service_config,
        metadata=InMemoryMetadata(),
        dispatcher=InlineDispatcher(),
    )


@pytest.fixture
def owner() -> Principal:
    return Principal(user_id="john")


@pytest.fixture
def other_user() -> Principal:
    return Principal(user_id="alice")


@pytest.fixture
def admin() -> Principal:
    return Principal(user_id="root_admin", role=ROLE_ADMIN)


@pytest.fixture
def sample_metadata() -> dict[str, Any]:
    """A complete, valid metadata record."""
    return {
        "image_id": "AAAAAAAAAAAAAAAAAAAAAA",
        "user_id": "john",
        "image_name": "sunset.jpg",
        "storage_path": "2024/01/AAAAAAAAAAAAAAAAAAAAAA.jpg",
        "file_size": 1024,
        "mime_type": "image/jpeg",
        "width": 640,
        "height": 480,
        "is_public": True,
        "tags": ["nature"],
        "view_count": 0,
        "download_count": 0,
        "created_at": "2024-01-15T10:00:00+00:00",
        "updated_at": "2024-01-15T10:00:00+00:00",
    }


@pytest.fixture
def metadata_factory(sample_metadata: dict[str, Any]) -> Callable[..., dict[str, Any]]:
    """Build a record from ``sample_metadata`` with overrides."""

    def _make(**overrides: Any) -> dict[str, Any]:
        item = dict(sample_metadata)
        item.update(overrides)
        if "image_id" in overrides and "storage_path" not in overrides:
            item["storage_path"] = f"2024/01/{overrides['image_id']}.jpg"
        return item

    return _make
